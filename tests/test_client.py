import socket

import pytest

from ircserv.client import Client


class FakeSocket:
    def __init__(self, fd=7):
        self.fd = fd
        self.sent = []
        self.incoming = []
        self.closed = False
        self.fail = False

    def sendall(self, data):
        if self.fail:
            raise OSError("broken")
        self.sent.append(data.decode())

    def recv(self, size):
        if self.fail:
            raise OSError("broken")
        return self.incoming.pop(0) if self.incoming else b""

    def fileno(self):
        return -1 if self.closed else self.fd

    def close(self):
        self.closed = True


def test_send_message_writes_encoded_text():
    sock = FakeSocket()
    client = Client(sock)
    client.send_message("PING :x\r\n")
    assert sock.sent == ["PING :x\r\n"]


def test_send_without_connection_raises():
    client = Client()
    with pytest.raises(ConnectionError):
        client.send_message("hello")
    with pytest.raises(ConnectionError):
        client.receive_message()


def test_send_failure_raises_connection_error():
    sock = FakeSocket()
    sock.fail = True
    client = Client(sock)
    with pytest.raises(ConnectionError):
        client.send_message("x")
    with pytest.raises(ConnectionError):
        client.receive_message()


def test_receive_message_decodes_chunk():
    sock = FakeSocket()
    sock.incoming.append(b"NICK bob\r\n")
    client = Client(sock)
    assert client.receive_message() == "NICK bob\r\n"
    assert client.receive_message() == ""


def test_fd_and_disconnect():
    sock = FakeSocket(fd=12)
    client = Client(sock)
    assert client.fd == 12
    client.disconnect()
    assert sock.closed is True
    assert client.fd == -1
    with pytest.raises(ConnectionError):
        client.send_message("x")


def test_full_identifier():
    client = Client(FakeSocket())
    client.nickname = "alice"
    client.username = "al"
    assert client.full_identifier == "alice!al@localhost"


def test_attributes_forward_to_state():
    client = Client(FakeSocket())
    client.nickname = "bob"
    client.realname = "Bob Example"
    assert client.state.nickname == "bob"
    assert client.state.realname == "Bob Example"
    client.pass_accepted = True
    client.nickname_registered = True
    assert client.authenticated is False
    client.user_registered = True
    assert client.authenticated is True


def test_channel_membership_and_operator():
    client = Client(FakeSocket())
    client.add_joined_channel("#c")
    client.grant_operator("#c")
    assert client.joined_channels == {"#c"}
    assert client.is_operator_of("#c") is True
    client.revoke_operator("#c")
    client.remove_joined_channel("#c")
    assert client.is_operator_of("#c") is False
    assert client.joined_channels == set()


def test_recv_buffer_starts_empty():
    client = Client()
    assert client.recv_buffer == ""
    client.recv_buffer = "partial"
    assert client.recv_buffer == "partial"


def test_socketpair_round_trip():
    left, right = socket.socketpair()
    try:
        sender = Client(left)
        receiver = Client(right)
        sender.send_message("JOIN #room\r\n")
        assert receiver.receive_message() == "JOIN #room\r\n"
    finally:
        left.close()
        right.close()


def test_connect_to_listening_socket():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]
    client = Client()
    try:
        client.connect("127.0.0.1", port)
        peer, _ = listener.accept()
        with peer:
            client.send_message("hello\n")
            assert peer.recv(64) == b"hello\n"
        assert client.fd >= 0
    finally:
        client.disconnect()
        listener.close()


def test_connect_invalid_address():
    client = Client()
    with pytest.raises(ValueError):
        client.connect("not-an-address", 6667)
    assert client.fd == -1


def test_connect_refused():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    client = Client()
    with pytest.raises(ConnectionError):
        client.connect("127.0.0.1", port)
    assert client.fd == -1
import socket
import threading
import time

import pytest

from ircserv.client import Client
from ircserv.server import WELCOME_BANNER, Server

PASSWORD = "password"


class FakeSocket:
    def __init__(self, fd):
        self._fd = fd
        self.sent = []

    def sendall(self, data):
        self.sent.append(data.decode("utf-8"))

    def recv(self, size):
        return b""

    def fileno(self):
        return self._fd

    def close(self):
        pass


def make_server():
    return Server(6667, PASSWORD)


def make_client(server, fd):
    sock = FakeSocket(fd)
    client = Client(sock)
    server.add_client(client)
    return client, sock


def register(server, client, nick):
    server.feed(client, f"PASS {PASSWORD}\r\n")
    server.feed(client, f"NICK {nick}\r\n")
    server.feed(client, f"USER {nick} 0 * :Real Name\r\n")


@pytest.mark.parametrize("port", [0, -1, 65536])
def test_rejects_bad_port(port):
    with pytest.raises(ValueError, match="Port must be between 1 and 65535"):
        Server(port, PASSWORD)


def test_rejects_empty_password():
    with pytest.raises(ValueError, match="Password cannot be empty"):
        Server(6667, "")


def test_registration_through_feed_sends_welcome():
    server = make_server()
    client, sock = make_client(server, 5)
    register(server, client, "alice")
    assert client.authenticated
    assert sock.sent[-1] == ":irc.localhost 001 alice :Welcome to the server!\r\n"


def test_partial_line_is_kept_until_newline():
    server = make_server()
    client, _ = make_client(server, 5)
    server.feed(client, b"PASS pass")
    assert not client.pass_accepted
    assert client.recv_buffer == "PASS pass"
    server.feed(client, b"word\r\n")
    assert client.pass_accepted
    assert client.recv_buffer == ""


def test_several_lines_in_one_chunk():
    server = make_server()
    client, _ = make_client(server, 5)
    server.feed(client, f"PASS {PASSWORD}\nNICK bob\n")
    assert client.nickname == "bob"
    assert client.nickname_registered


def test_nickname_lookup():
    server = make_server()
    client, _ = make_client(server, 7)
    register(server, client, "carol")
    assert server.is_nickname_in_use("carol")
    assert not server.is_nickname_in_use("dave")
    assert server.find_client_by_nickname("carol") is client
    assert server.find_client_by_nickname("dave") is None


def test_find_client_by_fd():
    server = make_server()
    first, _ = make_client(server, 7)
    second, _ = make_client(server, 8)
    assert server.find_client_by_fd(8) is second
    assert server.find_client_by_fd(7) is first
    assert server.find_client_by_fd(99) is None


def test_add_and_find_channel():
    server = make_server()
    assert server.find_channel("#room") is None
    server.join_channel(Client(FakeSocket(3)), "#room")
    channel = server.find_channel("#room")
    assert channel.name == "#room"


def test_join_channel_creates_channel_with_operator():
    server = make_server()
    client, _ = make_client(server, 4)
    server.join_channel(client, "#new")
    channel = server.find_channel("#new")
    assert channel.is_operator(client)
    assert channel.has_client(client)
    server.join_channel(client, "#new")
    assert channel.user_count == 1
    assert len(server.channels) == 1


def test_join_command_and_privmsg_between_clients():
    server = make_server()
    alice, alice_sock = make_client(server, 10)
    bob, bob_sock = make_client(server, 11)
    register(server, alice, "alice")
    register(server, bob, "bob")
    server.feed(alice, "JOIN #chat\r\n")
    server.feed(bob, "JOIN #chat\r\n")
    server.feed(alice, "PRIVMSG #chat :hello\r\n")
    assert bob_sock.sent[-1] == ":alice!alice@localhost PRIVMSG #chat :hello\r\n"
    assert server.find_channel("#chat").user_count == 2
    assert all("PRIVMSG" not in line for line in alice_sock.sent)


def test_stop_without_start_is_harmless():
    server = make_server()
    server.stop()
    assert not server.ready.is_set()


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


def _read_until(sock, needle, timeout=5.0):
    sock.settimeout(timeout)
    data = b""
    deadline = time.monotonic() + timeout
    while needle not in data and time.monotonic() < deadline:
        chunk = sock.recv(1024)
        if not chunk:
            break
        data += chunk
    return data


@pytest.fixture
def running_server():
    server = Server(_free_port(), PASSWORD)
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()
    assert server.ready.wait(5)
    yield server
    server.stop()
    thread.join(5)


def test_live_connection_registers(running_server):
    with socket.create_connection(("127.0.0.1", running_server.port), timeout=5) as sock:
        assert WELCOME_BANNER in _read_until(sock, WELCOME_BANNER)
        sock.sendall(f"PASS {PASSWORD}\r\nNICK erin\r\nUSER erin 0 * :Erin\r\n".encode())
        reply = _read_until(sock, b"001")
        assert b":irc.localhost 001 erin :Welcome to the server!\r\n" in reply


def test_disconnect_releases_nickname(running_server):
    with socket.create_connection(("127.0.0.1", running_server.port), timeout=5) as sock:
        _read_until(sock, WELCOME_BANNER)
        sock.sendall(f"PASS {PASSWORD}\r\nNICK frank\r\nUSER frank 0 * :F\r\n".encode())
        _read_until(sock, b"001")
        assert running_server.is_nickname_in_use("frank")
    deadline = time.monotonic() + 5
    while running_server.is_nickname_in_use("frank") and time.monotonic() < deadline:
        time.sleep(0.05)
    assert not running_server.is_nickname_in_use("frank")


def test_stop_ends_the_loop():
    server = Server(_free_port(), PASSWORD)
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()
    assert server.ready.wait(5)
    server.stop()
    thread.join(5)
    assert not thread.is_alive()
    assert not server.ready.is_set()
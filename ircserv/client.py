"""A connected IRC client: its socket, its state and its receive buffer."""

from __future__ import annotations

import logging
import socket
from typing import Any

from .state import ClientState

logger = logging.getLogger(__name__)

_RECV_SIZE = 1023


class _StateAttribute:
    """Exposes an attribute of the client's ClientState on the client itself."""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return getattr(obj.state, self.name)

    def __set__(self, obj: Any, value: Any) -> None:
        setattr(obj.state, self.name, value)


class Client:
    """One peer of the server.

    ``sock`` is any socket-like object providing ``sendall``, ``recv``,
    ``fileno`` and ``close``; it may be ``None`` for a client not yet
    connected.
    """

    nickname = _StateAttribute()
    username = _StateAttribute()
    realname = _StateAttribute()
    nickname_registered = _StateAttribute()
    user_registered = _StateAttribute()
    pass_accepted = _StateAttribute()
    joined_channels = _StateAttribute()
    operator_channels = _StateAttribute()

    def __init__(self, sock: Any = None) -> None:
        self._sock = sock
        self.state = ClientState()
        self.recv_buffer = ""

    def __repr__(self) -> str:
        return f"Client(fd={self.fd}, nickname={self.nickname!r})"

    @property
    def fd(self) -> int:
        """File descriptor of the connection, or -1 when not connected."""
        if self._sock is None:
            return -1
        return self._sock.fileno()

    @property
    def authenticated(self) -> bool:
        return self.state.authenticated

    @property
    def full_identifier(self) -> str:
        return f"{self.nickname}!{self.username}@localhost"

    def connect(self, address: str, port: int) -> None:
        """Open a TCP connection to an IPv4 address."""
        try:
            socket.inet_pton(socket.AF_INET, address)
        except OSError:
            raise ValueError("Invalid address") from None
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.connect((address, port))
        except (OSError, OverflowError) as exc:
            sock.close()
            raise ConnectionError("Connection failed") from exc
        self._sock = sock
        logger.info("Connected to %s:%d", address, port)

    def disconnect(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def send_message(self, message: str) -> None:
        if self._sock is None:
            raise ConnectionError("Not connected")
        try:
            self._sock.sendall(message.encode("utf-8"))
        except OSError as exc:
            raise ConnectionError("Failed to send message") from exc

    def receive_message(self) -> str:
        """Read up to one chunk from the connection; empty at end of stream."""
        if self._sock is None:
            raise ConnectionError("Not connected")
        try:
            data = self._sock.recv(_RECV_SIZE)
        except OSError as exc:
            raise ConnectionError("Failed to receive message") from exc
        return data.decode("utf-8", errors="replace")

    def add_joined_channel(self, channel_name: str) -> None:
        self.state.add_joined_channel(channel_name)

    def remove_joined_channel(self, channel_name: str) -> None:
        self.state.remove_joined_channel(channel_name)

    def is_operator_of(self, channel_name: str) -> bool:
        return self.state.is_operator_of(channel_name)

    def grant_operator(self, channel_name: str) -> None:
        self.state.grant_operator(channel_name)

    def revoke_operator(self, channel_name: str) -> None:
        self.state.revoke_operator(channel_name)
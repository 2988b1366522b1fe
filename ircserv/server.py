"""The IRC server: listening socket, connection loop, clients and channels."""

from __future__ import annotations

import logging
import selectors
import socket
import threading
from typing import Any

from .channel import Channel
from .client import Client
from .commands import execute

logger = logging.getLogger(__name__)

WELCOME_BANNER = b"Welcome to IRC server!\n"
_POLL_INTERVAL = 0.2


class Server:
    """An IRC server listening on every interface on ``port``."""

    def __init__(self, port: int, password: str) -> None:
        if port <= 0 or port > 65535:
            raise ValueError("Port must be between 1 and 65535")
        if not password:
            raise ValueError("Password cannot be empty")
        self.port = port
        self.password = password
        self.clients: list[Client] = []
        self.channels: list[Channel] = []
        self.ready = threading.Event()
        self._listener: socket.socket | None = None
        self._running = False
        self._serving = False

    def __repr__(self) -> str:
        return f"Server(port={self.port})"

    def start(self) -> None:
        """Bind, listen and serve connections until :meth:`stop` is called."""
        logger.info("Server started on port %d", self.port)
        self._setup_socket()
        self._run_loop()

    def stop(self) -> None:
        """Ask the loop to finish; close the listening socket if it is idle."""
        self._running = False
        if not self._serving and self._listener is not None:
            self._listener.close()
            self._listener = None

    def _setup_socket(self) -> None:
        try:
            listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as exc:
            raise OSError("Failed to create socket") from exc
        try:
            listener.bind(("", self.port))
        except OSError as exc:
            listener.close()
            raise OSError("Bind failed") from exc
        try:
            listener.listen(socket.SOMAXCONN)
        except OSError as exc:
            listener.close()
            raise OSError("Listen failed") from exc
        self._listener = listener

    def _run_loop(self) -> None:
        listener = self._listener
        if listener is None:
            raise RuntimeError("Server socket is not set up")
        selector = selectors.DefaultSelector()
        selector.register(listener, selectors.EVENT_READ, None)
        self._running = True
        self._serving = True
        self.ready.set()
        try:
            while self._running:
                for key, _ in selector.select(timeout=_POLL_INTERVAL):
                    if key.data is None:
                        self._handle_new_connection(selector)
                    elif not self._handle_client_data(key.data):
                        self._cleanup_client(selector, key)
        finally:
            for key in list(selector.get_map().values()):
                if key.data is not None:
                    key.data.disconnect()
            selector.close()
            listener.close()
            self._listener = None
            self._serving = False
            self._running = False
            self.ready.clear()

    def _handle_new_connection(self, selector: selectors.BaseSelector) -> None:
        assert self._listener is not None
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return
        logger.info("New client connected: fd=%d", conn.fileno())
        try:
            conn.sendall(WELCOME_BANNER)
        except OSError:
            conn.close()
            return
        client = Client(conn)
        self.add_client(client)
        selector.register(conn, selectors.EVENT_READ, client)

    def _handle_client_data(self, client: Client) -> bool:
        try:
            text = client.receive_message()
        except ConnectionError:
            return False
        if not text:
            return False
        try:
            self.feed(client, text)
        except ConnectionError as exc:
            logger.warning("Failed to deliver a reply: %s", exc)
        return True

    def _cleanup_client(
        self, selector: selectors.BaseSelector, key: selectors.SelectorKey
    ) -> None:
        client: Client = key.data
        logger.info("Client disconnected (fd=%d)", client.fd)
        selector.unregister(key.fileobj)
        if client in self.clients:
            self.clients.remove(client)
        for channel in self.channels:
            channel.remove_client(client)
            channel.remove_operator(client)
            channel.remove_invite(client)
        client.disconnect()

    def feed(self, client: Client, data: bytes | str) -> None:
        """Add received data to the client's buffer and run every complete line."""
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        *lines, client.recv_buffer = (client.recv_buffer + data).split("\n")
        for line in lines:
            if line.endswith("\r"):
                line = line[:-1]
            logger.info("Received command: %s", line)
            execute(client, self, line)

    def is_nickname_in_use(self, nickname: str) -> bool:
        return any(client.nickname == nickname for client in self.clients)

    def join_channel(self, client: Any, channel_name: str) -> None:
        channel = self.find_channel(channel_name)
        if channel is None:
            channel = Channel(channel_name)
            self.add_channel(channel)
            channel.add_operator(client)
        if not channel.has_client(client):
            channel.add_client(client)
        logger.info("Client %s joined channel: %s", client.nickname, channel_name)

    def find_channel(self, channel_name: str) -> Channel | None:
        return next((c for c in self.channels if c.name == channel_name), None)

    def add_channel(self, channel: Channel) -> None:
        self.channels.append(channel)

    def add_client(self, client: Client) -> None:
        self.clients.append(client)

    def find_client_by_nickname(self, nickname: str) -> Client | None:
        return next((c for c in self.clients if c.nickname == nickname), None)

    def find_client_by_fd(self, fd: int) -> Client | None:
        return next((c for c in self.clients if c.fd == fd), None)
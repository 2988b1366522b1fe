"""IRC channels: membership, operators, invitations and modes."""

from __future__ import annotations

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_INT = re.compile(r"[+-]?\d+")


class _ArgReader:
    """Reads whitespace-separated mode arguments; once a read fails, all later reads fail."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._failed = False

    def _skip_space(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos].isspace():
            self._pos += 1

    def word(self) -> str:
        if self._failed:
            return ""
        self._skip_space()
        start = self._pos
        while self._pos < len(self._text) and not self._text[self._pos].isspace():
            self._pos += 1
        if start == self._pos:
            self._failed = True
        return self._text[start:self._pos]

    def integer(self) -> int:
        if self._failed:
            return 0
        self._skip_space()
        match = _INT.match(self._text, self._pos)
        if match is None:
            self._failed = True
            return 0
        self._pos = match.end()
        return int(match.group())


class Channel:
    """A named channel and its modes (+i, +t, +k, +l, +o)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.topic = ""
        self.key = ""
        self.user_limit = 0
        self.invite_only = False
        self.topic_locked = False
        self.clients: set[Any] = set()
        self.operators: set[Any] = set()
        self.invited: set[Any] = set()

    def __repr__(self) -> str:
        return f"Channel({self.name!r})"

    @property
    def limit_enabled(self) -> bool:
        return self.user_limit > 0

    @property
    def user_count(self) -> int:
        return len(self.clients)

    def add_client(self, client: Any) -> None:
        self.clients.add(client)

    def remove_client(self, client: Any) -> None:
        self.clients.discard(client)

    def has_client(self, client: Any) -> bool:
        return client in self.clients

    def add_operator(self, client: Any) -> None:
        self.operators.add(client)

    def remove_operator(self, client: Any) -> None:
        self.operators.discard(client)

    def is_operator(self, client: Any) -> bool:
        return client in self.operators

    def remove_key(self) -> None:
        self.key = ""

    def invite(self, client: Any) -> None:
        self.invited.add(client)

    def is_invited(self, client: Any) -> bool:
        return client in self.invited

    def remove_invite(self, client: Any) -> None:
        self.invited.discard(client)

    def broadcast(self, message: str, except_client: Any = None) -> None:
        """Send a message to every member except ``except_client``."""
        for member in list(self.clients):
            if member is not except_client:
                member.send_message(message)

    def apply_mode(self, mode: str, args: str, client: Any, server: Any) -> None:
        """Apply a mode string such as ``+kl`` taking arguments from ``args``."""
        reader = _ArgReader(args)
        adding = True
        for flag in mode:
            if flag == "+":
                adding = True
            elif flag == "-":
                adding = False
            elif flag == "i":
                self.invite_only = adding
            elif flag == "t":
                self.topic_locked = adding
            elif flag == "k":
                self.set_channel_pass(adding, reader.word(), client)
            elif flag == "o":
                self.set_operator(adding, reader.word(), client, server)
            elif flag == "l":
                self.set_user_limit(adding, reader.integer(), client)

    def remove_mode(self, mode: str) -> None:
        if mode == "i":
            self.invite_only = False
        elif mode == "t":
            self.topic_locked = False
        elif mode == "k":
            self.remove_key()
        elif mode == "l":
            self.user_limit = 0

    def set_channel_pass(self, adding: bool, password: str, client: Any) -> None:
        if adding:
            if self.key == password:
                logger.info("Password already set")
                return
            self.key = password
            self.broadcast(f":{client.full_identifier} MODE {self.name} +k {password}\n")
        else:
            self.remove_key()
            self.broadcast(f":{client.full_identifier} MODE {self.name} -k\n")

    def set_user_limit(self, adding: bool, limit: int, client: Any) -> None:
        if adding:
            if self.user_limit == limit:
                logger.info("User limit already set")
                return
            self.user_limit = limit
            self.broadcast(f":{client.full_identifier} MODE {self.name} +l {limit}\n")
        else:
            self.user_limit = 0
            self.broadcast(f":{client.full_identifier} MODE {self.name} -l\n")

    def set_operator(self, adding: bool, nickname: str, issuer: Any, server: Any) -> None:
        target = server.find_client_by_nickname(nickname)
        if target is None:
            issuer.send_message(f"401 {nickname} :No such nick\n")
            return
        if not self.has_client(target):
            issuer.send_message(
                f"441 {nickname} {self.name} :They aren't on that channel\n"
            )
            return
        if adding:
            target.grant_operator(self.name)
            self.broadcast(f":{issuer.full_identifier} MODE {self.name} +o {nickname}\n")
        else:
            target.revoke_operator(self.name)
            self.broadcast(f":{issuer.full_identifier} MODE {self.name} -o {nickname}\n")
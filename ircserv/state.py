"""Registration and membership state of a single IRC client."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ClientState:
    """Identity, registration progress and channel membership of a client."""

    nickname: str = ""
    username: str = ""
    realname: str = ""
    nickname_registered: bool = False
    user_registered: bool = False
    pass_accepted: bool = False
    joined_channels: set[str] = field(default_factory=set)
    operator_channels: set[str] = field(default_factory=set)

    @property
    def authenticated(self) -> bool:
        """True once PASS, NICK and USER have all been accepted."""
        return self.nickname_registered and self.user_registered and self.pass_accepted

    def add_joined_channel(self, channel_name: str) -> None:
        self.joined_channels.add(channel_name)

    def remove_joined_channel(self, channel_name: str) -> None:
        self.joined_channels.discard(channel_name)

    def is_operator_of(self, channel_name: str) -> bool:
        return channel_name in self.operator_channels

    def grant_operator(self, channel_name: str) -> None:
        self.operator_channels.add(channel_name)

    def revoke_operator(self, channel_name: str) -> None:
        self.operator_channels.discard(channel_name)
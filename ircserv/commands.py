"""Parsing and handling of the IRC commands a client sends to the server."""

from __future__ import annotations

import logging
import string
from enum import IntEnum
from typing import Any, Callable

from .channel import Channel

logger = logging.getLogger(__name__)

SERVER_NAME = "irc.localhost"
MAX_JOINED_CHANNELS = 10
MAX_NICKNAME_LENGTH = 9

_SPACE = " \t\n\v\f\r"
_CHANNEL_PREFIXES = "#&"
_NICK_FIRST_EXTRA = "[\\`_^{}|]"
_NICK_REST_EXTRA = "-[\\`_^{}|]"
_ALPHA = string.ascii_letters
_ALNUM = string.ascii_letters + string.digits


class ErrorCode(IntEnum):
    """Numeric error replies the server knows how to phrase."""

    ERR_NOSUCHNICK = 401
    ERR_NOSUCHCHANNEL = 403
    ERR_CANNOTSENDTOCHAN = 404
    ERR_TOOMANYCHANNELS = 405
    ERR_NOORIGIN = 409
    ERR_NORECIPIENT = 411
    ERR_NOTEXTTOSEND = 412
    ERR_NOTOPLEVEL = 413
    ERR_UNKNOWNCOMMAND = 421
    ERR_NONICKNAMEGIVEN = 431
    ERR_ERRONEUSNICKNAME = 432
    ERR_NICKNAMEINUSE = 433
    ERR_USERONCHANNEL = 443
    ERR_NOTREGISTERED = 451
    ERR_NEEDMOREPARAMS = 461
    ERR_ALREADYREGISTERED = 462
    ERR_PASSWDMISMATCH = 464
    ERR_UNKNOWNMODE = 472
    ERR_CHANOPRIVSNEEDED = 482


_ERROR_TEMPLATES: dict[int, str] = {
    ErrorCode.ERR_ALREADYREGISTERED: "462 {nick} :You may not reregister",
    ErrorCode.ERR_NEEDMOREPARAMS: "461 {nick} {command} :Not enough parameters",
    ErrorCode.ERR_PASSWDMISMATCH: "464 {nick} :Password incorrect",
    ErrorCode.ERR_NONICKNAMEGIVEN: "431 {nick} :No nickname given",
    ErrorCode.ERR_ERRONEUSNICKNAME: "432 {nick} {target} :Erroneous nickname",
    ErrorCode.ERR_NICKNAMEINUSE: "433 {nick} {target} :Nickname is already in use",
    ErrorCode.ERR_NOTREGISTERED: "451 {nick} :You have not registered",
    ErrorCode.ERR_UNKNOWNCOMMAND: "421 {nick} {command} :Unknown command",
    ErrorCode.ERR_NOTEXTTOSEND: "412 {nick} :No text to send",
    ErrorCode.ERR_NORECIPIENT: "411 {nick} :No recipient given",
    ErrorCode.ERR_NOTOPLEVEL: "413 {nick} :No toplevel domain specified",
    ErrorCode.ERR_CANNOTSENDTOCHAN: "404 {nick} {target} :Cannot send to channel",
    ErrorCode.ERR_TOOMANYCHANNELS: "405 {nick} {target} :You have joined too many channels",
    ErrorCode.ERR_UNKNOWNMODE: "472 {nick} {target} :Unknown mode",
    ErrorCode.ERR_CHANOPRIVSNEEDED: "482 {nick} {target} :You're not channel operator",
    ErrorCode.ERR_USERONCHANNEL: "443 {nick} {target} :is already on channel",
    ErrorCode.ERR_NOSUCHNICK: "401 {nick} {target} :No such nick/channel",
    ErrorCode.ERR_NOSUCHCHANNEL: "403 {nick} {target} :No such channel",
    ErrorCode.ERR_NOORIGIN: "409 {nick} :No origin specified",
}
_UNKNOWN_ERROR = "400 {nick} :Unknown error"


def ltrim(text: str, chars: str = " ") -> str:
    """Return ``text`` without the leading characters found in ``chars``."""
    return text.lstrip(chars)


def _scan(text: str, count: int) -> tuple[list[str], str]:
    """Read ``count`` whitespace-separated words, then the rest of the line.

    A word that cannot be read comes back empty, as do all words after it
    and the rest of the line.
    """
    words: list[str] = []
    pos = 0
    failed = False
    for _ in range(count):
        if failed:
            words.append("")
            continue
        while pos < len(text) and text[pos] in _SPACE:
            pos += 1
        start = pos
        while pos < len(text) and text[pos] not in _SPACE:
            pos += 1
        if start == pos:
            failed = True
        words.append(text[start:pos])
    rest = "" if failed else text[pos:].split("\n", 1)[0]
    return words, rest


def _is_channel_name(name: str) -> bool:
    return bool(name) and name[0] in _CHANNEL_PREFIXES


def parse_command(message: str) -> tuple[str, str]:
    """Split a line into its command word and its arguments."""
    (cmd,), rest = _scan(message, 1)
    if rest.startswith(" "):
        rest = rest[1:]
    return cmd, rest


def send_error(client: Any, error_code: int, command: str = "", target: str = "") -> None:
    """Send the numeric error reply for ``error_code`` to ``client``."""
    template = _ERROR_TEMPLATES.get(int(error_code), _UNKNOWN_ERROR)
    body = template.format(nick=client.nickname, command=command, target=target)
    client.send_message(f":{SERVER_NAME} {body}\r\n")


def _welcome_if_registered(client: Any) -> None:
    if client.authenticated:
        client.send_message(
            f":{SERVER_NAME} 001 {client.nickname} :Welcome to the server!\r\n"
        )


def handle_pass(client: Any, server: Any, args: str) -> None:
    if client.nickname_registered or client.user_registered:
        send_error(client, ErrorCode.ERR_ALREADYREGISTERED)
        return
    if not args:
        send_error(client, ErrorCode.ERR_NEEDMOREPARAMS, "PASS")
        return
    if args != server.password:
        send_error(client, ErrorCode.ERR_PASSWDMISMATCH)
        return
    client.pass_accepted = True
    logger.info("Handling PASS command")


def _valid_nickname(nickname: str) -> bool:
    first, rest = nickname[0], nickname[1:]
    if first not in _ALPHA and first not in _NICK_FIRST_EXTRA:
        return False
    return all(ch in _ALNUM or ch in _NICK_REST_EXTRA for ch in rest)


def handle_nick(client: Any, server: Any, args: str) -> None:
    if not args:
        send_error(client, ErrorCode.ERR_NONICKNAMEGIVEN, "NICK")
        return
    if len(args) > MAX_NICKNAME_LENGTH:
        send_error(client, ErrorCode.ERR_ERRONEUSNICKNAME, "NICK", args)
        return
    if not client.pass_accepted:
        send_error(client, ErrorCode.ERR_NOTREGISTERED, "NICK")
        return
    if not _valid_nickname(args):
        send_error(client, ErrorCode.ERR_ERRONEUSNICKNAME, "NICK", args)
        return
    if server.is_nickname_in_use(args):
        send_error(client, ErrorCode.ERR_NICKNAMEINUSE, "NICK", args)
        return
    client.nickname = args
    client.nickname_registered = True
    _welcome_if_registered(client)
    logger.info("Handling NICK command with args: %s", args)


def handle_user(client: Any, args: str) -> None:
    (username, hostname, servername), realname = _scan(args, 3)
    if not username or not hostname or not servername:
        send_error(client, ErrorCode.ERR_NEEDMOREPARAMS, "USER")
        return
    realname = realname.lstrip(" ")
    if not realname.startswith(":"):
        send_error(client, ErrorCode.ERR_NEEDMOREPARAMS, "USER")
        return
    realname = realname[1:]
    if client.user_registered:
        send_error(client, ErrorCode.ERR_ALREADYREGISTERED, "USER")
        return
    client.username = username
    client.realname = realname
    client.user_registered = True
    _welcome_if_registered(client)
    logger.info("Handling USER command with args: %s", args)


def _split_channel_list(args: str) -> list[str]:
    names = args.split(",")
    if args.endswith(","):
        names.pop()
    return names


def handle_join(client: Any, server: Any, args: str) -> None:
    if not client.authenticated:
        send_error(client, ErrorCode.ERR_NOTREGISTERED, "JOIN")
        return
    if not args:
        send_error(client, ErrorCode.ERR_NEEDMOREPARAMS, "JOIN")
        return
    if len(client.joined_channels) >= MAX_JOINED_CHANNELS:
        send_error(client, ErrorCode.ERR_TOOMANYCHANNELS, "JOIN")
        return

    for name in _split_channel_list(args):
        if not _is_channel_name(name):
            send_error(client, ErrorCode.ERR_NOSUCHCHANNEL, "JOIN", name)
            continue
        channel = server.find_channel(name)
        if channel is None:
            channel = Channel(name)
            server.add_channel(channel)
            channel.add_operator(client)
            client.grant_operator(name)
        else:
            if channel.invite_only and not channel.is_invited(client):
                send_error(client, 473, "JOIN", name)
                continue
            if channel.limit_enabled and channel.user_count >= channel.user_limit:
                send_error(client, 471, "JOIN", name)
                continue
            if channel.has_client(client):
                continue
        channel.add_client(client)
        client.add_joined_channel(name)
        channel.broadcast(f":{client.full_identifier} JOIN :{name}\r\n")
        server.join_channel(client, name)
    logger.info("Handling JOIN command with args: %s", args)


def handle_privmsg(client: Any, server: Any, args: str) -> None:
    if not client.authenticated:
        send_error(client, ErrorCode.ERR_NOTREGISTERED, "PRIVMSG")
        return
    if not args:
        send_error(client, ErrorCode.ERR_NEEDMOREPARAMS, "PRIVMSG")
        return
    (target,), message = _scan(args, 1)
    message = ltrim(message)
    if message.startswith(":"):
        message = message[1:]
    if not target:
        send_error(client, ErrorCode.ERR_NORECIPIENT, "PRIVMSG")
        return
    if not message:
        send_error(client, ErrorCode.ERR_NOTEXTTOSEND, "PRIVMSG")
        return

    line = f":{client.full_identifier} PRIVMSG {target} :{message}\r\n"
    if _is_channel_name(target):
        channel = server.find_channel(target)
        if channel is None:
            send_error(client, ErrorCode.ERR_NOSUCHNICK, "PRIVMSG", target)
            return
        if not channel.has_client(client):
            send_error(client, ErrorCode.ERR_CANNOTSENDTOCHAN, "PRIVMSG", target)
            return
        for member in list(channel.clients):
            if member is not client:
                member.send_message(line)
    else:
        recipient = server.find_client_by_nickname(target)
        if recipient is None:
            send_error(client, ErrorCode.ERR_NOSUCHNICK, "PRIVMSG", target)
            return
        recipient.send_message(line)
    logger.info("Handling PRIVMSG command with args: %s", args)


def _not_registered(client: Any, command: str = "JOIN") -> None:
    client.send_message(f"451 {command} :You have not registered\n")


def _no_such_channel(client: Any, channel_name: str) -> None:
    client.send_message(f"403 {client.nickname} {channel_name} :No such channel\n")


def _not_operator(client: Any, channel_name: str) -> None:
    client.send_message(f"482 {channel_name} :You're not channel operator\n")


def _need_more_params(client: Any, channel_name: str) -> None:
    client.send_message(f"461 {client.nickname} {channel_name} :Not enough parameters\n")


def handle_mode(client: Any, server: Any, args: str) -> None:
    (channel_name, mode), remaining = _scan(args, 2)
    channel = server.find_channel(channel_name)
    if not client.authenticated:
        _not_registered(client)
        return
    if channel is None:
        _no_such_channel(client, channel_name)
        return
    if not mode:
        _need_more_params(client, channel_name)
        return
    if mode[0] not in "+-":
        client.send_message(f"472 {client.nickname} {channel_name} :Unknown mode\n")
        return
    if len(mode) <= 1:
        _need_more_params(client, channel_name)
        return
    if not client.is_operator_of(channel_name):
        _not_operator(client, channel_name)
        return
    channel.apply_mode(mode, remaining, client, server)
    channel.broadcast(
        f":{client.full_identifier} MODE {channel_name} {mode} {remaining}\n"
    )


def handle_kick(client: Any, server: Any, args: str) -> None:
    (channel_name, target_nick), _ = _scan(args, 2)
    if not client.authenticated:
        _not_registered(client)
        return
    if not channel_name or not target_nick:
        _need_more_params(client, channel_name)
        return
    if not _is_channel_name(channel_name):
        _no_such_channel(client, channel_name)
        return
    channel = server.find_channel(channel_name)
    if channel is None:
        _no_such_channel(client, channel_name)
        return
    if not client.is_operator_of(channel_name):
        _not_operator(client, channel_name)
        return
    target = server.find_client_by_nickname(target_nick)
    if target is None:
        client.send_message(
            f"441 {client.nickname} {target_nick} :They aren't on that channel\n"
        )
        return
    channel.remove_client(target)
    target.remove_joined_channel(channel_name)
    if target.is_operator_of(channel_name):
        target.revoke_operator(channel_name)
    line = f":{client.full_identifier} KICK {channel_name} {target_nick}\n"
    target.send_message(line)
    channel.broadcast(line)


def handle_topic(client: Any, server: Any, args: str) -> None:
    (channel_name,), topic = _scan(args, 1)
    if not client.authenticated:
        _not_registered(client)
        return
    if topic.startswith(" "):
        topic = topic[1:]
    channel = server.find_channel(channel_name)
    if channel is None:
        _no_such_channel(client, channel_name)
        return
    if not client.is_operator_of(channel_name):
        _not_operator(client, channel_name)
        return
    channel.topic = topic
    channel.broadcast(f":{client.full_identifier} TOPIC {channel_name} :{topic}\n")


def handle_invite(client: Any, server: Any, args: str) -> None:
    (target_nick, channel_name), _ = _scan(args, 2)
    if not client.authenticated:
        _not_registered(client)
        return
    if not target_nick or not channel_name:
        _need_more_params(client, channel_name)
        return
    if not _is_channel_name(channel_name):
        _no_such_channel(client, channel_name)
        return
    channel = server.find_channel(channel_name)
    if channel is None:
        _no_such_channel(client, channel_name)
        return
    target = server.find_client_by_nickname(target_nick)
    if target is None:
        client.send_message(
            f"441 {client.nickname} {target_nick} :They aren't on that channel\n"
        )
        return
    channel.invite(target)
    target.send_message(
        f":{client.full_identifier} INVITE {target_nick} :{channel_name}\n"
    )
    logger.info("Handling INVITE command with args: %s", args)


def handle_part(client: Any, server: Any, args: str) -> None:
    (channel_name,), _ = _scan(args, 1)
    if not client.authenticated:
        _not_registered(client, "PART")
        return
    if not channel_name:
        client.send_message(f"461 {client.nickname} :Not enough parameters\n")
        return
    if not _is_channel_name(channel_name):
        _no_such_channel(client, channel_name)
        return
    channel = server.find_channel(channel_name)
    if channel is None:
        _no_such_channel(client, channel_name)
        return
    if not channel.has_client(client):
        client.send_message(
            f"442 {client.nickname} {channel_name} :You're not on that channel\n"
        )
        return
    channel.remove_client(client)
    client.remove_joined_channel(channel_name)
    if client.is_operator_of(channel_name):
        client.revoke_operator(channel_name)
    channel.broadcast(f":{client.full_identifier} PART {channel_name}\n")
    logger.info("Handling PART command with args: %s", args)


def handle_ping(client: Any, args: str) -> None:
    (first, second), _ = _scan(args, 2)
    if not first:
        send_error(client, ErrorCode.ERR_NOORIGIN)
        return
    reply = f":{client.full_identifier} PONG {first}"
    if second:
        reply += f" {second}"
    client.send_message(reply + "\n")
    logger.info("Handling PING command with args: %s", args)


_HANDLERS: dict[str, Callable[[Any, Any, str], None]] = {
    "PASS": handle_pass,
    "NICK": handle_nick,
    "USER": lambda client, server, args: handle_user(client, args),
    "JOIN": handle_join,
    "PRIVMSG": handle_privmsg,
    "MODE": handle_mode,
    "KICK": handle_kick,
    "TOPIC": handle_topic,
    "INVITE": handle_invite,
    "PART": handle_part,
    "PING": lambda client, server, args: handle_ping(client, args),
}


def execute(client: Any, server: Any, message: str) -> None:
    """Parse one line from ``client`` and run the matching command."""
    cmd, args = parse_command(message)
    if not cmd:
        send_error(client, ErrorCode.ERR_NEEDMOREPARAMS)
        return
    handler = _HANDLERS.get(cmd)
    if handler is None:
        send_error(client, ErrorCode.ERR_UNKNOWNCOMMAND)
        return
    handler(client, server, args)
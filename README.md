# ircserv

A small IRC server that runs in a single process and serves every connection
from one event loop. Clients present the server password, register a nickname
and user, and can then create and join channels, talk in them, and manage
them as channel operators.

## Installation

```
pip install .
```

## Running the server

```
ircserv <port> <password>
```

For example:

```
ircserv 6667 password
```

The port is read as a leading integer (text without one counts as 0). It must
lie between 1 and 65535 and the password must not be empty; otherwise the
message is printed to standard error and the command exits with status 1. The
wrong number of arguments prints a usage line and exits with status 1.
Progress is logged to standard error. Ctrl-C stops the server.

The server listens on every IPv4 interface on the given port. Each new
connection first receives the line `Welcome to IRC server!`, and from then on
every line the client sends (ended by `\n`, with an optional `\r` before it)
is handled as one command.

## Registration

```
PASS password
NICK alice
USER alice host server :Alice Example
```

- `PASS` is refused with `462` once `NICK` or `USER` has been accepted, and a
  wrong password is answered with `464`.
- `NICK` is refused with `451` until `PASS` has been accepted. It accepts at
  most 9 characters; the first must be an ASCII letter or one of
  `` [\`_^{}|] ``, the rest may also be digits or `-` (otherwise `432`).
  Names already taken are refused with `433`.
- `USER` needs a username, a hostname, a server name and a real name
  introduced by `:` (otherwise `461`); a second `USER` is answered with `462`.

When `PASS`, `NICK` and `USER` have all been accepted, the server sends the
`001` welcome reply.

## Commands

| Command   | Form                               | What it does |
|-----------|------------------------------------|--------------|
| `JOIN`    | `JOIN #a,#b`                       | Joins or creates channels; names start with `#` or `&`. A client already in 10 channels is refused with `405`. The creator becomes operator. Invite-only channels answer `473` to uninvited clients, full channels `471`. |
| `PRIVMSG` | `PRIVMSG <nick or #channel> :text` | Sends text to a user, or to every other member of a channel the sender is in. |
| `MODE`    | `MODE #chan +itkol [args]`         | Operators change channel modes. |
| `KICK`    | `KICK #chan <nick>`                | Operators remove a user from a channel. |
| `TOPIC`   | `TOPIC #chan new topic`            | Operators set the channel topic. |
| `INVITE`  | `INVITE <nick> #chan`              | Invites a user, which lets them into an invite-only channel. |
| `PART`    | `PART #chan`                       | Leaves a channel. |
| `PING`    | `PING <server1> [server2]`         | Answered with `PONG`. |

Channel modes set with `MODE`:

- `i` — invite only
- `t` — topic lock flag
- `k <key>` — channel key
- `o <nick>` — give or take operator status
- `l <count>` — user limit (`-l` removes it)

An empty line is answered with `461`, unknown commands with `421`, and
commands that need registration with `451` until the client has registered.

## Use from Python

The server can be driven without a listening socket:

```python
from ircserv.client import Client
from ircserv.server import Server


class Recorder:
    def __init__(self):
        self.sent = []

    def sendall(self, data):
        self.sent.append(data)

    def fileno(self):
        return 5

    def close(self):
        pass


server = Server(6667, "password")
client = Client(Recorder())
server.add_client(client)
server.feed(client, b"PASS password\r\nNICK alice\r\nUSER alice h s :Alice\r\n")
```

- `Client(sock)` wraps any socket-like object with `sendall`, `recv`,
  `fileno` and `close`; `Client.connect(address, port)` opens a real IPv4
  TCP connection instead.
- `Server.feed(client, data)` appends bytes or text to the client's buffer and
  executes every complete line; an unfinished line waits in the buffer.
- `Server.find_channel`, `Server.find_client_by_nickname` and
  `Server.find_client_by_fd` look things up; `Server.is_nickname_in_use`
  checks nicknames.
- `Server.start()` binds, listens and serves until `Server.stop()` is called;
  `Server.ready` is an event set while it is serving.
- `ircserv.commands.execute(client, server, line)` runs a single command line,
  and `ircserv.channel.Channel` holds a channel's members, operators,
  invitations and modes.

## What it does not do

- A channel key set with `+k` is stored and announced but not asked for on
  `JOIN`, and `JOIN` takes no key argument.
- The `+t` flag is stored, but `TOPIC` always requires operator status.
- There is no `QUIT`, `NAMES`, `WHO`, `LIST`, `NOTICE` or server-to-server
  linking; nothing is kept after the process ends, and there is no TLS or
  IPv6.
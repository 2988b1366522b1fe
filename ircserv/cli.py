"""Command-line entry point: ``ircserv <port> <password>``."""

from __future__ import annotations

import logging
import re
import sys

from .server import Server

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_port(text: str) -> int:
    """Read a leading integer as the C library does; 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def main(argv: list[str] | None = None) -> int:
    """Run the server; return the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 2:
        print("Usage: ircserv <port> <password>", file=sys.stderr)
        return 1
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    port = _parse_port(args[0])
    password = args[1]
    try:
        server = Server(port, password)
        try:
            server.start()
        except KeyboardInterrupt:
            server.stop()
    except (ValueError, OSError, RuntimeError) as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
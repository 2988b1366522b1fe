import socket

import pytest

from ircserv.cli import main


@pytest.mark.parametrize("argv", [[], ["6667"], ["6667", "password", "extra"]])
def test_wrong_argument_count(argv, capsys):
    assert main(argv) == 1
    assert "Usage: ircserv <port> <password>" in capsys.readouterr().err


@pytest.mark.parametrize("port", ["abc", "0", "70000", "-5"])
def test_invalid_port(port, capsys):
    assert main([port, "password"]) == 1
    assert "Port must be between 1 and 65535" in capsys.readouterr().err


def test_empty_password(capsys):
    assert main(["6667", ""]) == 1
    assert "Password cannot be empty" in capsys.readouterr().err


def test_port_already_in_use(capsys):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as holder:
        holder.bind(("", 0))
        holder.listen(1)
        port = holder.getsockname()[1]
        assert main([str(port), "password"]) == 1
    assert "Bind failed" in capsys.readouterr().err
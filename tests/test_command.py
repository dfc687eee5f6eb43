import os
import sys

import pytest

from runny.command import resolve_executable, split_command
from runny.errors import ParseError, SpawnError


@pytest.mark.parametrize(
    ("command", "argv"),
    [
        ("echo hello", ["echo", "hello"]),
        ("/bin/echo -n 'Launch test echo works'", ["/bin/echo", "-n", "Launch test echo works"]),
        ('bash -c "echo $HOME"', ["bash", "-c", "echo $HOME"]),
        ("  seq   1  5 ", ["seq", "1", "5"]),
        (("printf", "%s\n", "a b"), ["printf", "%s\n", "a b"]),
        (["true"], ["true"]),
    ],
)
def test_split_command(command: "str | list[str]", argv: "list[str]") -> None:
    assert split_command(command) == argv


@pytest.mark.parametrize("command", ["", "   ", [], [""]])
def test_empty_command(command: "str | list[str]") -> None:
    with pytest.raises(ParseError, match="no command was specified"):
        split_command(command)


def test_unterminated_quote() -> None:
    with pytest.raises(ParseError, match="no closing quotation") as exc_info:
        split_command("echo 'hello")
    assert exc_info.value.command == "echo 'hello"


def test_resolve_executable_on_path() -> None:
    directory, name = os.path.split(sys.executable)
    assert resolve_executable(name, search_path=directory) == os.path.join(directory, name)


def test_resolve_executable_missing() -> None:
    with pytest.raises(SpawnError, match="Command not found"):
        resolve_executable("definitely-not-a-real-command-4242", search_path="")


def test_resolve_explicit_path(tmp_path: "os.PathLike[str]") -> None:
    with pytest.raises(SpawnError, match="No such file or directory"):
        resolve_executable("/does/not/exist")
    assert resolve_executable(sys.executable) == sys.executable
    with pytest.raises(SpawnError):
        resolve_executable("./missing-script", cwd=tmp_path)

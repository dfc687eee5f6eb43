from __future__ import annotations

import os
import shlex
import shutil
from typing import TYPE_CHECKING

from .errors import ParseError, SpawnError

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["split_command", "resolve_executable"]


def split_command(command: str | Sequence[str]) -> list[str]:
    """Tokenize a command line into an argv list.

    Already tokenized commands are copied as-is.  Strings are split with
    POSIX shell quoting rules; on Windows backslashes are kept literally so
    that paths such as ``C:\\Windows\\notepad.exe`` survive.
    """
    if not isinstance(command, str):
        argv = [str(arg) for arg in command]
        if not argv or not argv[0]:
            raise ParseError(" ".join(argv), "no command was specified")
        return argv

    source = command.replace("\\", "\\\\") if os.name == "nt" else command
    try:
        argv = shlex.split(source)
    except ValueError as e:
        # shlex reports "No closing quotation" / "No escaped character"
        raise ParseError(command, str(e).lower()) from None

    if not argv:
        raise ParseError(command, "no command was specified")
    return argv


def resolve_executable(
    executable: str,
    *,
    search_path: str | None = None,
    cwd: str | os.PathLike | None = None,
) -> str:
    if os.path.dirname(executable):
        if cwd is not None and not os.path.isabs(executable):
            candidate = os.path.join(cwd, executable)
        else:
            candidate = executable
        if not os.path.exists(candidate):
            msg = f"No such file or directory: {executable!r}"
            raise SpawnError(msg)
        return executable

    if (found := shutil.which(executable, path=search_path)) is None:
        msg = f"Command not found: {executable!r}"
        raise SpawnError(msg)
    return found

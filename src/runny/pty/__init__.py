from __future__ import annotations

import os
from typing import TYPE_CHECKING, Protocol

if os.name == "nt":
    from ._winpipe import spawn as _spawn
else:
    from ._unixpty import spawn as _spawn


__all__ = ["spawn", "Session"]


class Session(Protocol):
    """A child process together with the OS grouping that owns its descendants.

    The reading and writing sides are handed to exactly one pump thread each,
    which closes them when it finishes.
    """

    @property
    def pid(self) -> int: ...

    def read(self, length: int) -> bytes: ...
    def write(self, data: bytes) -> int: ...
    def close_reader(self) -> None: ...
    def close_writer(self) -> None: ...

    def poll(self) -> int | None: ...
    def wait(self, timeout: float | None = None) -> int | None: ...

    def graceful_stop(self) -> None: ...
    def forceful_stop(self) -> None: ...


if TYPE_CHECKING:
    from collections.abc import Mapping

    def spawn(
        argv: list[str],
        *,
        cwd: str | os.PathLike | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Session: ...
else:
    spawn = _spawn

from __future__ import annotations

import logging
import os
import signal
import subprocess
from typing import TYPE_CHECKING

from runny.errors import TerminateError

if os.name != "nt":
    msg = f"{os.name} is not supported"
    raise ImportError(msg) from None

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class _WinProcess:
    def __init__(self, process: subprocess.Popen[bytes]) -> None:
        self.process = process

    @property
    def pid(self) -> int:
        return self.process.pid

    def read(self, length: int) -> bytes:
        assert self.process.stdout is not None
        try:
            return self.process.stdout.read(length) or b""
        except (BrokenPipeError, ValueError):
            return b""

    def write(self, data: bytes) -> int:
        assert self.process.stdin is not None
        return self.process.stdin.write(data) or 0

    def close_reader(self) -> None:
        if self.process.stdout is not None:
            self.process.stdout.close()

    def close_writer(self) -> None:
        if self.process.stdin is not None:
            try:
                self.process.stdin.close()
            except OSError:
                pass

    def poll(self) -> int | None:
        return self.process.poll()

    def wait(self, timeout: float | None = None) -> int | None:
        try:
            return self.process.wait(timeout)
        except subprocess.TimeoutExpired:
            return None

    def graceful_stop(self) -> None:
        # Delivered to every process attached to the new process group
        logger.debug("Sending CTRL_BREAK_EVENT to process group %d", self.pid)
        try:
            self.process.send_signal(signal.CTRL_BREAK_EVENT)
        except OSError:
            logger.debug("CTRL_BREAK_EVENT was not delivered to %d", self.pid)

    def forceful_stop(self) -> None:
        logger.debug("Killing process tree %d", self.pid)
        result = subprocess.run(  # noqa: S603
            ["taskkill", "/F", "/T", "/PID", str(self.pid)],  # noqa: S607
            capture_output=True,
            check=False,
        )
        if result.returncode != 0 and self.process.poll() is None:
            try:
                self.process.kill()
            except OSError as e:
                raise TerminateError(self.pid, str(e)) from e


def spawn(
    argv: list[str],
    *,
    cwd: str | os.PathLike | None = None,
    env: Mapping[str, str] | None = None,
) -> _WinProcess:
    process = subprocess.Popen(  # noqa: S603
        argv,
        cwd=cwd,
        env=env,
        bufsize=0,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        creationflags=subprocess.CREATE_NEW_PROCESS_GROUP,
    )
    logger.debug("Spawned pid %d on pipes: %s", process.pid, argv)
    return _WinProcess(process)

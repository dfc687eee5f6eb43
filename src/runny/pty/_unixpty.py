from __future__ import annotations

import errno
import logging
import os
import pty
import select
import signal
import subprocess
import threading
import tty
from typing import TYPE_CHECKING

from runny.errors import TerminateError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

# How often a blocked writer checks whether the session has finished
_WRITE_POLL_INTERVAL = 0.1


class _UnixProcess:
    def __init__(
        self, process: subprocess.Popen[bytes], reader_fd: int, writer_fd: int
    ) -> None:
        self.process = process
        self.reader_fd = reader_fd
        self.writer_fd = writer_fd
        self._close_lock = threading.Lock()
        self._output_done = threading.Event()

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def finished(self) -> bool:
        return self._output_done.is_set() or self.process.returncode is not None

    def read(self, length: int) -> bytes:
        while True:
            select.select([self.reader_fd], [], [])
            try:
                data = os.read(self.reader_fd, length)
            except BlockingIOError:
                continue
            except OSError as e:
                # Linux reports EIO once every slave descriptor is closed
                if e.errno != errno.EIO:
                    raise
                data = b""
            if not data:
                self._output_done.set()
            return data

    def write(self, data: bytes) -> int:
        # The master is non-blocking, so a child that never drains its input
        # cannot wedge the writer past the end of the session
        while not self.finished:
            _, ready, _ = select.select([], [self.writer_fd], [], _WRITE_POLL_INTERVAL)
            if not ready:
                continue
            try:
                return os.write(self.writer_fd, data)
            except BlockingIOError:
                continue
        raise BrokenPipeError(errno.EPIPE, "the child process has exited")

    def close_reader(self) -> None:
        with self._close_lock:
            fd, self.reader_fd = self.reader_fd, -1
        if fd >= 0:
            os.close(fd)

    def close_writer(self) -> None:
        with self._close_lock:
            fd, self.writer_fd = self.writer_fd, -1
        if fd >= 0:
            os.close(fd)

    def poll(self) -> int | None:
        return self.process.poll()

    def wait(self, timeout: float | None = None) -> int | None:
        try:
            return self.process.wait(timeout)
        except subprocess.TimeoutExpired:
            return None

    def graceful_stop(self) -> None:
        self._signal_group(signal.SIGTERM)

    def forceful_stop(self) -> None:
        self._signal_group(signal.SIGKILL)

    def _group_is_ours(self) -> bool:
        if self.process.returncode is None:
            return True
        # A reaped leader's pid stays reserved while its group has members.
        # If a live process owns the pid again, the group emptied and the id
        # was handed out anew, so there is nothing of ours left to signal.
        try:
            os.getpgid(self.pid)
        except ProcessLookupError:
            return True
        return False

    def _signal_group(self, sig: signal.Signals) -> None:
        # The child is a session leader, so its pid is also the group id
        if not self._group_is_ours():
            logger.debug("Process group %d no longer belongs to the child", self.pid)
            return
        logger.debug("Sending %s to process group %d", sig.name, self.pid)
        try:
            os.killpg(self.pid, sig)
        except ProcessLookupError:
            pass
        except PermissionError as e:
            # macOS answers EPERM when only zombies are left in the group
            if self.process.poll() is None:
                raise TerminateError(self.pid, str(e)) from e


def spawn(
    argv: list[str],
    *,
    cwd: str | os.PathLike | None = None,
    env: Mapping[str, str] | None = None,
) -> _UnixProcess:
    master_fd, slave_fd = pty.openpty()
    try:
        # No echo, no "\n" -> "\r\n" translation, no signal characters
        tty.setraw(slave_fd)
        # Shared by the dup below: both ends wait in select instead
        os.set_blocking(master_fd, False)
        writer_fd = os.dup(master_fd)
        try:
            process = subprocess.Popen(  # noqa: S603
                argv,
                cwd=cwd,
                env=env,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,
            )
        except BaseException:
            os.close(writer_fd)
            raise
    except BaseException:
        os.close(master_fd)
        raise
    finally:
        os.close(slave_fd)

    logger.debug("Spawned pid %d on pty: %s", process.pid, argv)
    return _UnixProcess(process, master_fd, writer_fd)

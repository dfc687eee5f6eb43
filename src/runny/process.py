from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from .pty import Session

__all__ = ["ExitStatus", "ChildProcess", "Waiter"]

logger = logging.getLogger(__name__)

# Upper bound on how long a blocked waiter goes without rechecking the status
_POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class ExitStatus:
    """How a child process ended.

    ``code`` is set when the child exited on its own.  ``signal`` is set when
    it died from a signal (POSIX only).  ``terminated`` marks children that
    were stopped by ``Running.terminate`` or the timeout watchdog; those
    never report an exit code.
    """

    code: int | None = None
    signal: int | None = None
    terminated: bool = False

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitStatus:
        if returncode < 0:
            return cls(signal=-returncode)
        return cls(code=returncode)

    @classmethod
    def terminated_status(cls, returncode: int | None = None) -> ExitStatus:
        if returncode is not None and returncode < 0:
            return cls(signal=-returncode, terminated=True)
        return cls(terminated=True)

    @property
    def success(self) -> bool:
        return self.code == 0


class ChildProcess:
    """Identity and status of a spawned child.

    The status moves from running to exited or terminated exactly once.  While
    a termination is in flight, a concurrent wait that reaps the child defers
    to it so that the final status is always ``terminated``.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._cond = threading.Condition()
        self._status: ExitStatus | None = None
        self._terminating = False

    @property
    def pid(self) -> int:
        return self.session.pid

    @property
    def status(self) -> ExitStatus | None:
        with self._cond:
            return self._status

    def poll(self) -> ExitStatus | None:
        with self._cond:
            if self._status is not None or self._terminating:
                return self._status
        returncode = self.session.poll()
        if returncode is None:
            return None
        return self._exited(returncode)

    def wait(self, timeout: float | None = None) -> ExitStatus | None:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._cond:
                if self._status is not None:
                    return self._status
                if self._terminating:
                    self._cond.wait(self._remaining(deadline))
                    if deadline is not None and time.monotonic() >= deadline:
                        return self._status
                    continue

            remaining = self._remaining(deadline)
            if remaining is not None and remaining <= 0:
                return None

            returncode = self.session.wait(remaining)
            if returncode is not None and (status := self._exited(returncode)):
                return status
            if deadline is not None and time.monotonic() >= deadline:
                return self.status

    @staticmethod
    def _remaining(deadline: float | None) -> float | None:
        if deadline is None:
            return _POLL_INTERVAL
        return min(_POLL_INTERVAL, max(0.0, deadline - time.monotonic()))

    def _exited(self, returncode: int) -> ExitStatus | None:
        with self._cond:
            if self._status is None and not self._terminating:
                self._status = ExitStatus.from_returncode(returncode)
                logger.debug("pid %d exited: %s", self.pid, self._status)
                self._cond.notify_all()
            return self._status

    def begin_termination(self) -> ExitStatus | None:
        """Claim the right to terminate, or return the already known status."""
        with self._cond:
            if self._status is not None:
                return self._status
            returncode = self.session.poll()
            if returncode is not None:
                self._status = ExitStatus.from_returncode(returncode)
                self._cond.notify_all()
                return self._status
            self._terminating = True
            return None

    def finish_termination(self, returncode: int | None) -> ExitStatus:
        with self._cond:
            self._status = ExitStatus.terminated_status(returncode)
            self._terminating = False
            logger.debug("pid %d terminated: %s", self.pid, self._status)
            self._cond.notify_all()
            return self._status


class Waiter:
    """Waits on a child from any thread without owning its ``Running`` handle."""

    def __init__(self, child: ChildProcess) -> None:
        self._child = child

    @property
    def pid(self) -> int:
        return self._child.pid

    def wait(self, timeout: float | None = None) -> bool:
        return self._child.wait(timeout) is not None

    def result(self) -> ExitStatus:
        # Without a timeout, wait only returns once a status is recorded
        return cast("ExitStatus", self._child.wait())

from __future__ import annotations

import enum
import logging
import threading
from typing import TYPE_CHECKING, Any

from .errors import TerminateError

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = ["Watchdog", "WatchdogState"]

logger = logging.getLogger(__name__)


class WatchdogState(enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    FIRED = "fired"
    DISARMED = "disarmed"


class Watchdog:
    """Terminates a child that outlives ``timeout`` seconds.

    ``wait`` blocks for at most the given number of seconds and returns
    ``None`` if the child is still running; ``expire`` is called at most once.
    """

    def __init__(
        self,
        timeout: float,
        *,
        wait: Callable[[float], Any | None],
        expire: Callable[[], Any],
        name: str = "runny-watchdog",
    ) -> None:
        self.timeout = timeout
        self._wait = wait
        self._expire = expire
        self._lock = threading.Lock()
        self._state = WatchdogState.IDLE
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def state(self) -> WatchdogState:
        return self._state

    def arm(self) -> None:
        with self._lock:
            if self._state is not WatchdogState.IDLE:
                return
            self._state = WatchdogState.ARMED
        self._thread.start()

    def disarm(self) -> None:
        with self._lock:
            if self._state is WatchdogState.ARMED:
                self._state = WatchdogState.DISARMED

    def join(self, timeout: float | None = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        exited = self._wait(self.timeout) is not None
        with self._lock:
            if exited or self._state is not WatchdogState.ARMED:
                if self._state is WatchdogState.ARMED:
                    self._state = WatchdogState.DISARMED
                return
            self._state = WatchdogState.FIRED

        logger.debug("Timed out after %.3gs, terminating", self.timeout)
        try:
            self._expire()
        except TerminateError as e:
            logger.warning("%s", e)

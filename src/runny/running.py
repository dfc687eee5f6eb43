from __future__ import annotations

import errno
import logging
import threading
from typing import TYPE_CHECKING, Any, cast

from .command import resolve_executable
from .config import Config
from .errors import AlreadyTakenError, SpawnError, StreamIOError, TerminateError
from .process import ChildProcess, ExitStatus, Waiter
from .pty import spawn
from .pump import InputPump, OutputPump
from .streams import InputStream, OutputStream
from .termination import terminate_session
from .watchdog import Watchdog

if TYPE_CHECKING:
    from types import TracebackType

    from typing_extensions import Self

    from .pty import Session

__all__ = ["Running", "start"]

logger = logging.getLogger(__name__)

# How long teardown waits for each helper thread before giving up on it
JOIN_TIMEOUT = 2.0


class Running:
    """A started child process, its merged output and its input.

    The handle can be read from and written to directly, or the streams can
    be detached with ``take_output``/``take_input`` and used from other
    threads.  Closing the handle (or letting it be collected) terminates the
    child and everything it spawned if it is still running.
    """

    def __init__(self, session: Session, config: Config) -> None:
        self.config = config
        self._session = session
        self._child = ChildProcess(session)
        self._lock = threading.Lock()
        self._terminate_lock = threading.Lock()
        self._closed = False

        self._output: OutputStream | None = OutputStream()
        self._input: InputStream | None = InputStream()
        self._input_pump = InputPump(self._input, session)
        # Nothing can read the input once the child's side of the pty is gone
        self._output_pump = OutputPump(
            session, self._output, on_eof=self._input_pump.stop
        )

        self._watchdog: Watchdog | None = None
        if config.timeout is not None:
            self._watchdog = Watchdog(
                config.timeout,
                wait=self._child.wait,
                expire=self.terminate,
                name=f"runny-watchdog-{session.pid}",
            )

    def _start(self) -> None:
        self._output_pump.start()
        self._input_pump.start()
        if self._watchdog is not None:
            self._watchdog.arm()

    @property
    def pid(self) -> int:
        return self._child.pid

    @property
    def watchdog(self) -> Watchdog | None:
        return self._watchdog

    def is_running(self) -> bool:
        return self._child.poll() is None

    def poll(self) -> ExitStatus | None:
        return self._child.poll()

    def result(self) -> ExitStatus:
        """Block until the child exits or is terminated and return its status."""
        # Without a timeout, wait only returns once a status is recorded
        return cast("ExitStatus", self._child.wait())

    def waiter(self) -> Waiter:
        return Waiter(self._child)

    def terminate(self, grace_period: float | None = None) -> ExitStatus:
        """Stop the child and all of its descendants.

        The process group is asked to stop, given ``grace_period`` seconds
        (the configured default when omitted), then killed.  Calling this on
        a child that has already finished returns its status unchanged.
        """
        if grace_period is None:
            grace_period = self.config.effective_grace_period

        with self._terminate_lock:
            if (status := self._child.begin_termination()) is not None:
                return status

            logger.debug("Terminating pid %d", self.pid)
            returncode = None
            try:
                returncode = terminate_session(self._session, grace_period)
            finally:
                status = self._child.finish_termination(returncode)
                if self._watchdog is not None:
                    self._watchdog.disarm()
        return status

    def take_output(self) -> OutputStream:
        with self._lock:
            if self._output is None:
                raise AlreadyTakenError("output")
            stream, self._output = self._output, None
        return stream

    def take_input(self) -> InputStream:
        with self._lock:
            if self._input is None:
                raise AlreadyTakenError("input")
            stream, self._input = self._input, None
        return stream

    def _check_open(self) -> None:
        if self._closed:
            msg = "the process handle is closed"
            raise StreamIOError(errno.EBADF, msg)

    def _output_stream(self) -> OutputStream:
        self._check_open()
        if (stream := self._output) is None:
            raise AlreadyTakenError("output")
        return stream

    def _input_stream(self) -> InputStream:
        self._check_open()
        if (stream := self._input) is None:
            raise AlreadyTakenError("input")
        return stream

    def read(self, size: int = -1) -> bytes:
        return self._output_stream().read(size) or b""

    def read_text(self, encoding: str = "utf-8", errors: str = "replace") -> str:
        return self._output_stream().read_text(encoding, errors)

    def readline(self, size: int = -1) -> bytes:
        return self._output_stream().readline(size)

    def write(self, data: bytes) -> int:
        return self._input_stream().write(data)

    def flush(self) -> None:
        self._input_stream().flush()

    def close_input(self) -> None:
        self._input_stream().close()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            streams = [s for s in (self._input, self._output) if s is not None]
            self._input = self._output = None

        if self._child.poll() is None:
            try:
                self.terminate()
            except TerminateError as e:
                logger.warning("Unable to stop pid %d during close: %s", self.pid, e)
        elif not self._child.status or not self._child.status.terminated:
            # The child is gone, but anything it left behind in its group is not
            try:
                self._session.forceful_stop()
            except TerminateError as e:
                logger.warning("Unable to clean up after pid %d: %s", self.pid, e)

        self._input_pump.stop()
        for stream in streams:
            stream.close()

        for thread in (self._input_pump, self._output_pump):
            if thread.is_alive() and thread is not threading.current_thread():
                thread.join(JOIN_TIMEOUT)
                if thread.is_alive():
                    logger.warning("%s did not finish", thread.name)
        if self._watchdog is not None:
            self._watchdog.join(JOIN_TIMEOUT)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()


def start(config: Config | str, **options: Any) -> Running:
    """Spawn the configured command and return its running handle.

    ``config`` may also be a bare command line, in which case ``options`` are
    passed on to ``Config``.
    """
    if not isinstance(config, Config):
        config = Config(command=config, **options)
    elif options:
        config = config.with_overrides(**options)

    argv = config.argv()
    env = config.build_environ()
    resolve_executable(argv[0], search_path=env.get("PATH"), cwd=config.cwd)

    try:
        session = spawn(argv, cwd=config.cwd, env=env)
    except OSError as e:
        msg = f"Unable to start {argv[0]!r}: {e.strerror or e}"
        raise SpawnError(e.errno, msg) from e

    running = Running(session, config)
    running._start()
    return running

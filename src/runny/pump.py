from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from .pty import Session
    from .streams import InputStream, OutputStream

__all__ = ["OutputPump", "InputPump", "CHUNK_SIZE"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4096


class OutputPump(threading.Thread):
    def __init__(
        self,
        session: Session,
        stream: OutputStream,
        *,
        on_eof: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(name=f"runny-output-{session.pid}", daemon=True)
        self.session = session
        self.stream = stream
        self.on_eof = on_eof

    def run(self) -> None:
        try:
            while data := self.session.read(CHUNK_SIZE):
                self.stream.feed(data)
        except OSError as e:
            logger.debug("Output of pid %d failed: %s", self.session.pid, e)
        finally:
            self.stream.feed_eof()
            self.session.close_reader()
            if self.on_eof is not None:
                self.on_eof()
        logger.debug("Output pump for pid %d finished", self.session.pid)


class InputPump(threading.Thread):
    def __init__(self, stream: InputStream, session: Session) -> None:
        super().__init__(name=f"runny-input-{session.pid}", daemon=True)
        self.stream = stream
        self.session = session

    def run(self) -> None:
        try:
            while (data := self.stream.next_chunk()) is not None:
                view = memoryview(data)
                while view:
                    view = view[self.session.write(view) :]
        except OSError as e:
            logger.debug("Input of pid %d failed: %s", self.session.pid, e)
            self.stream.abort()
        finally:
            self.session.close_writer()
        logger.debug("Input pump for pid %d finished", self.session.pid)

    def stop(self) -> None:
        self.stream.abort()

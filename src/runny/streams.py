from __future__ import annotations

import errno
import io
import queue
import threading
from typing import Any

from .errors import StreamIOError

__all__ = ["OutputStream", "InputStream"]

_EOF: Any = object()


class OutputStream(io.RawIOBase):
    """The child's merged output.

    Reads block until the output pump has delivered some bytes or the child's
    side of the stream has closed, at which point reads return ``b""``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._buffer = bytearray()
        self._cond = threading.Condition()
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        if not len(buffer):
            return 0
        with self._cond:
            self._cond.wait_for(lambda: self._buffer or self._eof or self.closed)
            if self.closed:
                msg = "read from a closed output stream"
                raise StreamIOError(errno.EBADF, msg)

            size = min(len(buffer), len(self._buffer))
            buffer[:size] = self._buffer[:size]
            del self._buffer[:size]
            return size

    def read_text(self, encoding: str = "utf-8", errors: str = "replace") -> str:
        return self.readall().decode(encoding, errors)

    @property
    def at_eof(self) -> bool:
        with self._cond:
            return self._eof and not self._buffer

    def close(self) -> None:
        with self._cond:
            super().close()
            self._buffer.clear()
            self._cond.notify_all()

    # Called from the output pump
    def feed(self, data: bytes) -> None:
        with self._cond:
            if self.closed:
                return
            self._buffer += data
            self._cond.notify_all()

    def feed_eof(self) -> None:
        with self._cond:
            self._eof = True
            self._cond.notify_all()


class InputStream(io.RawIOBase):
    """Bytes destined for the child's stdin.

    Writes never block: data is queued and delivered by the input pump.  Once
    the child stops accepting input, further writes raise ``StreamIOError``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._queue: queue.SimpleQueue[bytes] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._broken = False

    def writable(self) -> bool:
        return True

    def write(self, data: Any) -> int:
        with self._lock:
            if self.closed:
                msg = "write to a closed input stream"
                raise StreamIOError(errno.EBADF, msg)
            if self._broken:
                msg = "the child process is no longer reading its input"
                raise StreamIOError(errno.EPIPE, msg)
            chunk = bytes(data)
            if chunk:
                self._queue.put(chunk)
        return len(chunk)

    @property
    def broken(self) -> bool:
        return self._broken

    def close(self) -> None:
        with self._lock:
            if not self.closed:
                self._queue.put(_EOF)
            super().close()

    # Called from the input pump
    def next_chunk(self) -> bytes | None:
        chunk = self._queue.get()
        return None if chunk is _EOF else chunk

    def abort(self) -> None:
        with self._lock:
            self._broken = True
            self._queue.put(_EOF)

"""Random-access byte sources for TSM reading.

Every source answers two questions: "give me N bytes at absolute offset O" and
"how large are you". Reads never share a cursor with one another, so a single
source may serve block reads from several threads at once.
"""

from __future__ import annotations

import io
import logging
import mmap
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Literal, Optional, Protocol, Union

logger = logging.getLogger(__name__)

HandlePolicy = Literal["mmap", "pread", "locked"]

_CLOSED_MESSAGE = "I/O operation on closed source"


class ByteSource(Protocol):
    """Protocol for positioned, read-only access to a byte sequence."""

    @property
    def size(self) -> int:
        """Total number of bytes available."""
        ...

    def read_at(self, offset: int, n: int) -> bytes:
        """Return up to ``n`` bytes starting at ``offset``; shorter only at EOF."""
        ...

    def close(self) -> None:
        """Release the underlying handle."""
        ...


class BytesSource:
    """In-memory source, mostly useful for tests and already-fetched files."""

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        self._data: Optional[bytes] = bytes(data)

    @property
    def size(self) -> int:
        if self._data is None:
            raise ValueError(_CLOSED_MESSAGE)
        return len(self._data)

    def read_at(self, offset: int, n: int) -> bytes:
        if self._data is None:
            raise ValueError(_CLOSED_MESSAGE)
        if offset < 0 or n < 0:
            raise ValueError(f"Invalid read of {n} bytes at offset {offset}")
        return self._data[offset:offset + n]

    def close(self) -> None:
        self._data = None


class _ReadGuard:
    """Counts reads in progress so ``close()`` waits for them to finish.

    Once closed, new reads are refused with the closed-source ``ValueError``.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._active = 0
        self.closed = False

    @contextmanager
    def reading(self) -> Iterator[None]:
        with self._cond:
            if self.closed:
                raise ValueError(_CLOSED_MESSAGE)
            self._active += 1
        try:
            yield
        finally:
            with self._cond:
                self._active -= 1
                if self._active == 0:
                    self._cond.notify_all()

    def close(self) -> bool:
        """Mark closed and wait out in-flight reads. False if already closed."""
        with self._cond:
            if self.closed:
                return False
            self.closed = True
            self._cond.wait_for(lambda: self._active == 0)
            return True


class MmapSource:
    """Memory-mapped file. Slicing the map is cursor-free, so reads are positioned."""

    def __init__(self, path: Union[str, Path]):
        self.path = os.fspath(path)
        self._size = os.path.getsize(self.path)
        self._fh: Optional[io.BufferedReader] = open(self.path, "rb", buffering=0)
        self._mm: Optional[mmap.mmap] = None
        self._guard = _ReadGuard()
        if self._size > 0:
            # mmap refuses zero-length files; an empty file simply has no bytes
            self._mm = mmap.mmap(self._fh.fileno(), length=0, access=mmap.ACCESS_READ)

    @property
    def size(self) -> int:
        return self._size

    def read_at(self, offset: int, n: int) -> bytes:
        if offset < 0 or n < 0:
            raise ValueError(f"Invalid read of {n} bytes at offset {offset}")
        with self._guard.reading():
            if self._size == 0:
                return b""
            assert self._mm is not None
            return self._mm[offset:offset + n]

    def close(self) -> None:
        if not self._guard.close():
            return
        if self._mm is not None:
            try:
                self._mm.close()
            finally:
                self._mm = None
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError as e:
                logger.warning("MmapSource: error closing file handle for %s: %s", self.path, e)
            finally:
                self._fh = None


class PreadSource:
    """Raw descriptor read with ``os.pread``; the kernel keeps no shared cursor."""

    def __init__(self, path: Union[str, Path]):
        if not hasattr(os, "pread"):
            raise RuntimeError("os.pread is not available on this platform")
        self.path = os.fspath(path)
        self._fd: Optional[int] = os.open(self.path, os.O_RDONLY)
        self._size = os.fstat(self._fd).st_size
        self._guard = _ReadGuard()

    @property
    def size(self) -> int:
        return self._size

    def read_at(self, offset: int, n: int) -> bytes:
        if offset < 0 or n < 0:
            raise ValueError(f"Invalid read of {n} bytes at offset {offset}")
        with self._guard.reading():
            # the descriptor stays open (and its number unreused) until close() sees no readers
            fd = self._fd
            assert fd is not None
            chunks = []
            remaining = n
            while remaining > 0:
                chunk = os.pread(fd, remaining, offset)
                if not chunk:
                    break
                chunks.append(chunk)
                offset += len(chunk)
                remaining -= len(chunk)
            return b"".join(chunks)

    def close(self) -> None:
        if not self._guard.close():
            return
        if self._fd is not None:
            fd, self._fd = self._fd, None
            os.close(fd)


class LockedFileSource:
    """Ordinary file object whose seek+read pairs are serialized by a lock."""

    def __init__(self, path: Union[str, Path]):
        self.path = os.fspath(path)
        self._fh: Optional[io.BufferedReader] = open(self.path, "rb")
        self._size = os.fstat(self._fh.fileno()).st_size
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return self._size

    def read_at(self, offset: int, n: int) -> bytes:
        if offset < 0 or n < 0:
            raise ValueError(f"Invalid read of {n} bytes at offset {offset}")
        with self._lock:
            if self._fh is None:
                raise ValueError(_CLOSED_MESSAGE)
            self._fh.seek(offset)
            return self._fh.read(n)

    def close(self) -> None:
        with self._lock:
            if self._fh is not None:
                try:
                    self._fh.close()
                finally:
                    self._fh = None


def open_source(path: Union[str, Path], policy: HandlePolicy = "mmap") -> ByteSource:
    """Open ``path`` with the requested handle policy."""
    if policy == "mmap":
        return MmapSource(path)
    if policy == "pread":
        if hasattr(os, "pread"):
            return PreadSource(path)
        logger.debug("os.pread unavailable; using a locked file handle for %s", path)
        return LockedFileSource(path)
    if policy == "locked":
        return LockedFileSource(path)
    raise ValueError(f"Unknown handle policy {policy!r}. Expected one of: mmap, pread, locked")

"""
Random-access byte sources.

None of the handles here check offsets: reading past the end raises whatever
the backing store raises (usually IndexError). Callers are expected to
validate ranges against ``length`` first. Wrap a handle in CheckedByteHandle
when an explicit OutOfRangeError is preferable.

Handles are not thread-safe; keep each open handle on a single thread.
"""

from __future__ import annotations

import logging
import mmap
import os
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import OutOfRangeError

logger = logging.getLogger(__name__)


class OpenMode(Enum):
    READ_ONLY = "r"
    READ_WRITE = "rw"


class ByteHandle(ABC):
    """Byte-exact random access to some buffer."""

    @property
    @abstractmethod
    def length(self) -> int:
        """Number of addressable bytes."""

    @abstractmethod
    def at(self, offset: int) -> int:
        """The byte at ``offset``."""

    @abstractmethod
    def set(self, offset: int, value: int) -> None:
        """Store the low 8 bits of ``value`` at ``offset``."""

    def read(self, offset: int, length: int) -> bytes:
        return bytes(self.at(offset + i) for i in range(length))

    def write(self, offset: int, data: bytes) -> None:
        for i, value in enumerate(data):
            self.set(offset + i, value)

    def __len__(self) -> int:
        return self.length

    def __getitem__(self, offset: int) -> int:
        return self.at(offset)

    def __setitem__(self, offset: int, value: int) -> None:
        self.set(offset, value)


class MemoryByteHandle(ByteHandle):
    def __init__(self, data: bytes | bytearray = b"") -> None:
        self._buffer = bytearray(data)

    @property
    def length(self) -> int:
        return len(self._buffer)

    def at(self, offset: int) -> int:
        return self._buffer[offset]

    def set(self, offset: int, value: int) -> None:
        self._buffer[offset] = value & 0xFF

    def read(self, offset: int, length: int) -> bytes:
        return bytes(self._buffer[offset : offset + length])

    def write(self, offset: int, data: bytes) -> None:
        self._buffer[offset : offset + len(data)] = data

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class FileByteHandle(ByteHandle):
    """
    Memory-mapped view of a file on disk.

    Writes through a READ_WRITE handle go straight into the mapping, so they
    are visible to later reads on the same handle before flush() is called.
    """

    def __init__(self, path: Path | str = "") -> None:
        self.path = Path(path) if path else None
        self.mode: Optional[OpenMode] = None
        self._file = None
        self._view: Optional[mmap.mmap] = None
        self._data: mmap.mmap | bytearray = bytearray()
        self._length = 0

    def open(self, mode: OpenMode = OpenMode.READ_ONLY, create: bool = False, size: int = 0) -> None:
        """
        Map the file into memory.

        With ``create`` the file is created (or truncated) and grown to
        ``size`` bytes first, which only makes sense for READ_WRITE handles.
        Raises OSError when the file cannot be opened or mapped.
        """
        if self.path is None:
            raise FileNotFoundError("No path set for byte handle")
        if self.is_open:
            self.close()
        if create:
            if mode is not OpenMode.READ_WRITE:
                raise ValueError("create requires a READ_WRITE handle")
            with self.path.open("wb") as fh:
                fh.truncate(size)
        file_mode = "rb" if mode is OpenMode.READ_ONLY else "r+b"
        fh = self.path.open(file_mode)
        try:
            length = os.fstat(fh.fileno()).st_size
            view: Optional[mmap.mmap] = None
            if length:
                access = mmap.ACCESS_READ if mode is OpenMode.READ_ONLY else mmap.ACCESS_WRITE
                view = mmap.mmap(fh.fileno(), 0, access=access)
        except Exception:
            fh.close()
            raise
        self._file = fh
        self._view = view
        # Empty files cannot be mapped; they read as a zero-length buffer.
        self._data = view if view is not None else bytearray()
        self._length = length
        self.mode = mode
        logger.debug("Mapped %s (%d bytes, %s)", self.path, length, mode.value)

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def length(self) -> int:
        return self._length

    def at(self, offset: int) -> int:
        return self._data[offset]

    def set(self, offset: int, value: int) -> None:
        self._data[offset] = value & 0xFF

    def read(self, offset: int, length: int) -> bytes:
        return bytes(self._data[offset : offset + length])

    def write(self, offset: int, data: bytes) -> None:
        self._data[offset : offset + len(data)] = data

    def flush(self) -> None:
        if self._view is not None and self.mode is OpenMode.READ_WRITE:
            self._view.flush()

    def close(self) -> None:
        if self._view is not None:
            self.flush()
            self._view.close()
            self._view = None
        if self._file is not None:
            self._file.close()
            self._file = None
        self._data = bytearray()
        self._length = 0
        self.mode = None

    def __enter__(self) -> "FileByteHandle":
        if not self.is_open:
            self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class CheckedByteHandle(ByteHandle):
    """Wraps another handle and rejects offsets outside ``[0, length)``."""

    def __init__(self, inner: ByteHandle) -> None:
        self.inner = inner

    @property
    def length(self) -> int:
        return self.inner.length

    def _check(self, offset: int, length: int = 1) -> None:
        if offset < 0 or length < 0 or offset + length > self.inner.length:
            raise OutOfRangeError(
                f"range [{offset}, {offset + length}) outside handle of {self.inner.length} bytes"
            )

    def at(self, offset: int) -> int:
        self._check(offset)
        return self.inner.at(offset)

    def set(self, offset: int, value: int) -> None:
        self._check(offset)
        self.inner.set(offset, value)

    def read(self, offset: int, length: int) -> bytes:
        self._check(offset, length)
        return self.inner.read(offset, length)

    def write(self, offset: int, data: bytes) -> None:
        self._check(offset, len(data))
        self.inner.write(offset, data)

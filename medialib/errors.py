from __future__ import annotations


class MedialibError(Exception):
    """Base class for errors raised by medialib."""


class SourceUnavailableError(MedialibError):
    """Raised when a track's source (file or device record) cannot be read."""


class FormatError(SourceUnavailableError):
    """Raised when a file's container or tag header is malformed or unrecognised."""


class CacheFormatError(MedialibError):
    """Raised when a cache record cannot be recognised; callers should fall back to refresh()."""


class OutOfRangeError(MedialibError, IndexError):
    """Raised by CheckedByteHandle for offsets outside the handle."""

"""
Binary cache records for track metadata.

Layout (all integers big-endian)::

    magic        4 bytes   b"MLTR"
    version      uint16
    strings      8 x (uint32 length + UTF-8 bytes)   path, title, artist, album,
                                                     album_artist, composer,
                                                     comment, genre
    int32        7 x       year, track_number, track_count, disc_number,
                           length_ms, bitrate, sample_rate
    int64        2 x       size, mtime_ns

Decoding is strict: a wrong magic, an unknown version, a truncated body or
trailing bytes all raise CacheFormatError.
"""

from __future__ import annotations

import struct

from .errors import CacheFormatError
from .models import INT32_FIELDS, INT64_FIELDS, STRING_FIELDS, TrackMetadata

MAGIC = b"MLTR"
FORMAT_VERSION = 1

_HEADER = struct.Struct(">4sH")
_LENGTH = struct.Struct(">I")
_INT32 = struct.Struct(">i")
_INT64 = struct.Struct(">q")


def encode_metadata(meta: TrackMetadata) -> bytes:
    parts = [_HEADER.pack(MAGIC, FORMAT_VERSION)]
    for name in STRING_FIELDS:
        raw = (getattr(meta, name) or "").encode("utf-8")
        parts.append(_LENGTH.pack(len(raw)))
        parts.append(raw)
    try:
        for name in INT32_FIELDS:
            parts.append(_INT32.pack(int(getattr(meta, name))))
        for name in INT64_FIELDS:
            parts.append(_INT64.pack(int(getattr(meta, name))))
    except struct.error as exc:
        raise ValueError(f"Cannot encode {meta.path}: {exc}") from exc
    return b"".join(parts)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    def take(self, count: int) -> bytes:
        end = self.offset + count
        if end > len(self.data):
            raise CacheFormatError(
                f"cache record truncated at byte {self.offset} (wanted {count} more)"
            )
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.take(fmt.size))


def decode_metadata(data: bytes) -> TrackMetadata:
    if not data:
        raise CacheFormatError("empty cache record")
    reader = _Reader(bytes(data))
    magic, version = reader.unpack(_HEADER)
    if magic != MAGIC:
        raise CacheFormatError(f"not a track cache record (magic {magic!r})")
    if version != FORMAT_VERSION:
        raise CacheFormatError(f"unsupported cache record version {version}")

    values: dict[str, object] = {}
    for name in STRING_FIELDS:
        (length,) = reader.unpack(_LENGTH)
        raw = reader.take(length)
        try:
            values[name] = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CacheFormatError(f"invalid UTF-8 in field {name}") from exc
    for name in INT32_FIELDS:
        (values[name],) = reader.unpack(_INT32)
    for name in INT64_FIELDS:
        (values[name],) = reader.unpack(_INT64)
    if reader.offset != len(reader.data):
        raise CacheFormatError(
            f"{len(reader.data) - reader.offset} trailing bytes after cache record"
        )
    return TrackMetadata(**values)

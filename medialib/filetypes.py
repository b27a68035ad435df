"""
Container detection from raw file bytes.

File types are decided by header signatures rather than by extension. For
files that begin with an ID3v2 tag the tag size is decoded (a synchsafe
integer) and the bytes after the tag are inspected to decide what the tag is
attached to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .bitwise import decode_synchsafe32
from .byte_handle import ByteHandle
from .errors import FormatError

logger = logging.getLogger(__name__)

ID3_HEADER_SIZE = 10
ID3_FOOTER_SIZE = 10
ID3_FLAG_FOOTER = 0x10

# Second byte of an MPEG audio frame header for Layer III in MPEG-1, 2 and 2.5,
# with and without CRC protection.
MPEG_SYNC_SECOND_BYTES = frozenset({0xFB, 0xFA, 0xF3, 0xF2, 0xE3, 0xE2})

# Audio "ftyp" brands; video-only and non-standard brands are left out.
MP4_AUDIO_BRANDS = frozenset(
    {
        b"M4A ",
        b"M4B ",
        b"M4P ",
        b"mp21",
        b"mp41",
        b"mp42",
        b"iso2",
        b"isom",
    }
)


class FileType(Enum):
    MPEG = "mp3"
    MP4 = "m4a"
    FLAC = "flac"
    OGG = "ogg"

    @property
    def extension(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ID3Header:
    major_version: int
    revision: int
    flags: int
    tag_size: int

    @property
    def has_footer(self) -> bool:
        return bool(self.flags & ID3_FLAG_FOOTER)

    @property
    def total_size(self) -> int:
        """Bytes from the start of the file to the first byte after the tag."""
        size = self.tag_size + ID3_HEADER_SIZE
        if self.has_footer:
            size += ID3_FOOTER_SIZE
        return size


def read_id3v2_header(handle: ByteHandle) -> Optional[ID3Header]:
    """
    Parse the ID3v2 header at the start of ``handle``, if there is one.

    An ID3v2 tag can be detected with the pattern ``49 44 33 yy yy xx zz zz zz zz``
    where yy is less than 0xFF, xx is the flags byte and zz is less than 0x80.
    """
    if handle.length < ID3_HEADER_SIZE:
        return None
    if handle.read(0, 3) != b"ID3":
        return None
    if handle.at(3) >= 0xFF or handle.at(4) >= 0xFF:
        return None
    if any(handle.at(i) >= 0x80 for i in range(6, 10)):
        return None
    return ID3Header(
        major_version=handle.at(3),
        revision=handle.at(4),
        flags=handle.at(5),
        tag_size=decode_synchsafe32(handle, 6),
    )


def is_mpeg_frame(handle: ByteHandle, offset: int) -> bool:
    if offset < 0 or offset + 1 >= handle.length:
        return False
    return handle.at(offset) == 0xFF and handle.at(offset + 1) in MPEG_SYNC_SECOND_BYTES


def find_mpeg_frame(handle: ByteHandle, start: int = 0) -> Optional[int]:
    """Return the offset of the first MPEG frame header at or after ``start``."""
    end = handle.length - 1
    i = max(start, 0)
    while i < end:
        if handle.at(i) == 0xFF:
            if handle.at(i + 1) in MPEG_SYNC_SECOND_BYTES:
                return i
            # A following 0xFF could itself start a header; anything else can be skipped.
            if handle.at(i + 1) != 0xFF:
                i += 1
        i += 1
    return None


def _is_mp4(handle: ByteHandle) -> bool:
    if handle.length < 12:
        return False
    if handle.read(4, 4) != b"ftyp":
        return False
    return handle.read(8, 4) in MP4_AUDIO_BRANDS


def _signature_at(handle: ByteHandle, offset: int, signature: bytes) -> bool:
    if offset + len(signature) > handle.length:
        return False
    return handle.read(offset, len(signature)) == signature


def resolve_file_type(handle: ByteHandle, name: str = "<buffer>") -> FileType:
    """
    Decide the container type of the bytes in ``handle``.

    Raises FormatError when the header matches no supported container.
    """
    if handle.length < 4:
        raise FormatError(f"{name}: file too short to identify")
    if _is_mp4(handle):
        return FileType.MP4
    if is_mpeg_frame(handle, 0):
        return FileType.MPEG
    if _signature_at(handle, 0, b"fLaC"):
        return FileType.FLAC
    if _signature_at(handle, 0, b"OggS"):
        return FileType.OGG

    header = read_id3v2_header(handle)
    if header is None:
        raise FormatError(f"{name}: unrecognised container")

    end = header.total_size
    if is_mpeg_frame(handle, end):
        return FileType.MPEG
    if _signature_at(handle, end, b"fLaC"):
        return FileType.FLAC

    # Assume the stored tag size is wrong and look for the first MPEG frame
    # anywhere in the file. Without one this is some other file carrying an
    # ID3v2 tag, which is not something we can read.
    frame = find_mpeg_frame(handle)
    if frame is not None:
        logger.warning(
            "ID3v2 tag size in %s points to offset %d but audio starts at %d; run `medialib doctor`",
            name,
            end,
            frame,
        )
        return FileType.MPEG
    raise FormatError(f"{name}: ID3v2 tag without recognisable audio")

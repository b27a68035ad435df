"""
Synchsafe integer helpers.

A "32-bit synchsafe integer" (as used in ID3v2 tag headers) is a 32-bit
integer whose every 8th bit is reserved and always zero, which leaves 28
significant bits:

    1111 1111 1111 1111 (0xFFFF)  =>  0000 0011 0111 1111 0111 1111 (0x37F7F)

Neither function checks the handle bounds; the four bytes starting at
``offset`` must exist.
"""

from __future__ import annotations

from .byte_handle import ByteHandle, MemoryByteHandle

SYNCHSAFE_MAX = 1 << 28


def decode_synchsafe32(handle: ByteHandle, offset: int = 0) -> int:
    """
    Read the synchsafe integer stored at ``offset`` as a plain integer.

    When reading an ID3v2 tag size the result excludes the 10-byte header
    and the footer (if present); adding those is up to the caller.
    """
    result = 0
    result |= (handle.at(offset + 0) & 0x7F) << 21
    result |= (handle.at(offset + 1) & 0x7F) << 14
    result |= (handle.at(offset + 2) & 0x7F) << 7
    result |= handle.at(offset + 3) & 0x7F
    return result


def encode_synchsafe32(handle: ByteHandle, offset: int, value: int) -> None:
    """
    Write ``value`` at ``offset`` as a synchsafe integer.

    Only the low 28 bits survive; anything above is silently dropped.
    """
    handle.set(offset + 3, value & 0x7F)
    handle.set(offset + 2, (value >> 7) & 0x7F)
    handle.set(offset + 1, (value >> 14) & 0x7F)
    handle.set(offset + 0, (value >> 21) & 0x7F)


def synchsafe_bytes(value: int) -> bytes:
    buf = MemoryByteHandle(bytes(4))
    encode_synchsafe32(buf, 0, value)
    return buf.getvalue()

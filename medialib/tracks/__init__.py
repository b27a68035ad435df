"""Track descriptors: one contract, one implementation per metadata source."""

from __future__ import annotations

from .base import Track
from .device import DeviceTrack
from .filesystem import FilesystemTrack

__all__ = ["DeviceTrack", "FilesystemTrack", "Track"]

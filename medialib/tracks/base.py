from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..models import TrackMetadata


class Track(ABC):
    """
    A single media item's metadata, independent of where it comes from.

    Accessors never perform I/O; they return whatever the descriptor last
    read. ``refresh()`` is the only operation that goes back to the source.
    Descriptors are not thread-safe: never run two operations on the same
    instance at once.
    """

    @property
    @abstractmethod
    def metadata(self) -> TrackMetadata:
        """A snapshot of every attribute."""

    @abstractmethod
    def refresh(self) -> bool:
        """
        Re-read every attribute from the authoritative source.

        Returns False, leaving the previous values untouched, when the source
        is missing or unreadable.
        """

    @abstractmethod
    def serialize(self) -> bytes:
        """Return an opaque, versioned cache record (b"" when caching is pointless)."""

    @abstractmethod
    def unserialize(self, data: bytes) -> None:
        """Restore attributes from ``serialize()`` output; raises CacheFormatError on bad input."""

    @property
    def path(self) -> str:
        return self.metadata.path

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def artist(self) -> str:
        return self.metadata.artist

    @property
    def album(self) -> str:
        return self.metadata.album

    @property
    def album_artist(self) -> str:
        return self.metadata.album_artist

    @property
    def composer(self) -> str:
        return self.metadata.composer

    @property
    def comment(self) -> str:
        return self.metadata.comment

    @property
    def genre(self) -> str:
        return self.metadata.genre

    @property
    def year(self) -> int:
        return self.metadata.year

    @property
    def track_number(self) -> int:
        return self.metadata.track_number

    @property
    def track_count(self) -> int:
        return self.metadata.track_count

    @property
    def disc_number(self) -> int:
        return self.metadata.disc_number

    @property
    def length_ms(self) -> int:
        return self.metadata.length_ms

    @property
    def bitrate(self) -> int:
        return self.metadata.bitrate

    @property
    def sample_rate(self) -> int:
        return self.metadata.sample_rate

    @property
    def size(self) -> int:
        return self.metadata.size

    @property
    def mtime_ns(self) -> int:
        return self.metadata.mtime_ns

    @property
    def modify_time(self) -> Optional[datetime]:
        return self.metadata.modify_time

    def track_hash(self) -> str:
        """
        A string built from the attributes that identify a recording.

        Not a digest; two descriptors with equal hashes are treated as the
        same track regardless of where they came from.
        """
        meta = self.metadata
        return "".join(
            [
                meta.genre,
                meta.artist,
                meta.album,
                meta.title,
                str(meta.year),
                str(meta.track_number),
                str(meta.track_count),
                str(meta.disc_number),
                str(meta.size),
                str(meta.length_ms // 1000),
            ]
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Track):
            return NotImplemented
        return self.track_hash() == other.track_hash()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"

    @staticmethod
    def length_display(seconds: int) -> str:
        """Format a length for display, e.g. 172 -> "2:52" and 3723 -> "1:02:03"."""
        if seconds < 0:
            return ""
        minutes, secs = divmod(seconds, 60)
        hours, minutes = divmod(minutes, 60)
        if hours:
            return f"{hours}:{minutes:02d}:{secs:02d}"
        return f"{minutes}:{secs:02d}"

from __future__ import annotations

import logging

from ..device_db import DeviceRecord, RecordRef
from ..models import TrackMetadata
from .base import Track

logger = logging.getLogger(__name__)

COMMON_PREFIXES = ("the ",)


class DeviceTrack(Track):
    """
    Track descriptor backed by a live device database record.

    Attributes are read straight from the record, which is cheap, so these
    descriptors are never cached: ``serialize()`` returns b"" and
    ``unserialize()`` does nothing. Once the owning session is closed every
    accessor falls back to defaults and ``refresh()`` reports failure.
    """

    def __init__(self, ref: RecordRef) -> None:
        self.ref = ref

    @property
    def metadata(self) -> TrackMetadata:
        record = self.ref.resolve()
        if record is None:
            return TrackMetadata()
        return self._to_metadata(record)

    @staticmethod
    def _to_metadata(record: DeviceRecord) -> TrackMetadata:
        return TrackMetadata(
            path=record.device_path,
            title=record.title or "",
            artist=record.artist or "",
            album=record.album or "",
            album_artist=record.album_artist or "",
            composer=record.composer or "",
            comment=record.comment or "",
            genre=record.genre or "",
            year=record.year,
            track_number=record.track_nr,
            track_count=record.tracks,
            disc_number=record.cd_nr,
            length_ms=record.tracklen,
            bitrate=record.bitrate,
            sample_rate=record.samplerate,
            size=record.size,
            mtime_ns=record.time_modified * 1_000_000_000,
        )

    def refresh(self) -> bool:
        if self.ref.resolve() is None:
            logger.debug("Device record %s is no longer available", self.ref.dbid)
            return False
        return True

    def serialize(self) -> bytes:
        return b""

    def unserialize(self, data: bytes) -> None:
        return None

    def apply_sort_options(self, case_insensitive: bool, ignore_common_prefixes: bool) -> None:
        """
        Derive the record's sort fields.

        With ``ignore_common_prefixes`` a leading "The " is dropped from the
        artist, album, album artist and composer (titles keep it). With
        ``case_insensitive`` every sort field is upper-cased.
        """
        record = self.ref.resolve()
        if record is None:
            return
        sort_title = record.title or ""
        sort_artist = record.artist or ""
        sort_album = record.album or ""
        sort_album_artist = record.album_artist or ""
        sort_composer = record.composer or ""

        if ignore_common_prefixes:
            sort_artist = _strip_prefix(sort_artist)
            sort_album = _strip_prefix(sort_album)
            sort_album_artist = _strip_prefix(sort_album_artist)
            sort_composer = _strip_prefix(sort_composer)

        if case_insensitive:
            sort_title = sort_title.upper()
            sort_artist = sort_artist.upper()
            sort_album = sort_album.upper()
            sort_album_artist = sort_album_artist.upper()
            sort_composer = sort_composer.upper()

        record.sort_title = sort_title
        record.sort_artist = sort_artist
        record.sort_album = sort_album
        record.sort_album_artist = sort_album_artist
        record.sort_composer = sort_composer

    def sort_key(self) -> tuple[str, str, int, int, str]:
        record = self.ref.resolve()
        if record is None:
            return ("", "", 0, 0, "")
        return (
            record.sort_artist or record.artist or "",
            record.sort_album or record.album or "",
            record.cd_nr,
            record.track_nr,
            record.sort_title or record.title or "",
        )


def _strip_prefix(value: str) -> str:
    lowered = value.lower()
    for prefix in COMMON_PREFIXES:
        if lowered.startswith(prefix):
            return value[len(prefix) :]
    return value

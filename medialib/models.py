from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

STRING_FIELDS = (
    "path",
    "title",
    "artist",
    "album",
    "album_artist",
    "composer",
    "comment",
    "genre",
)
INT32_FIELDS = (
    "year",
    "track_number",
    "track_count",
    "disc_number",
    "length_ms",
    "bitrate",
    "sample_rate",
)
INT64_FIELDS = ("size", "mtime_ns")

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


@dataclass(slots=True)
class TrackMetadata:
    """
    Every attribute a track descriptor exposes.

    Strings default to "" and numbers to 0 until a descriptor has been
    refreshed or restored from its cache record.
    """

    path: str = ""
    title: str = ""
    artist: str = ""
    album: str = ""
    album_artist: str = ""
    composer: str = ""
    comment: str = ""
    genre: str = ""
    year: int = 0
    track_number: int = 0
    track_count: int = 0
    disc_number: int = 0
    length_ms: int = 0
    bitrate: int = 0
    sample_rate: int = 0
    size: int = 0
    mtime_ns: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.path, Path):
            self.path = str(self.path)

    @property
    def modify_time(self) -> Optional[datetime]:
        if not self.mtime_ns:
            return None
        return datetime.fromtimestamp(self.mtime_ns / 1_000_000_000, tz=timezone.utc)

    def to_record(self) -> Dict[str, object]:
        payload: Dict[str, object] = {f.name: getattr(self, f.name) for f in fields(self)}
        modify_time = self.modify_time
        payload["modify_time"] = modify_time.isoformat() if modify_time else None
        return payload


def _parse_int(value: object) -> Optional[int]:
    """Tag values as int32, or None when they are not plain numbers in range."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return _int32_or_none(value)
    if isinstance(value, str):
        cleaned = value.strip()
        if "/" in cleaned:
            cleaned = cleaned.split("/", 1)[0].strip()
    else:
        try:
            cleaned = str(value).strip()
        except Exception:
            return None
    # str.isdigit() also accepts superscripts and other digits int() rejects.
    if cleaned.isascii() and cleaned.isdigit():
        return _int32_or_none(int(cleaned))
    return None


def _int32_or_none(value: int) -> Optional[int]:
    if INT32_MIN <= value <= INT32_MAX:
        return value
    return None


def _parse_pair(value: object) -> tuple[Optional[int], Optional[int]]:
    """Split "3/12"-style values into (number, total)."""
    if value is None:
        return None, None
    if isinstance(value, (tuple, list)):
        first = _parse_int(value[0]) if len(value) > 0 else None
        second = _parse_int(value[1]) if len(value) > 1 else None
        return first, second or None
    text = str(value).strip()
    if "/" not in text:
        return _parse_int(text), None
    number, total = text.split("/", 1)
    return _parse_int(number), _parse_int(total)

"""
In-memory device database session.

A DeviceDatabase owns every DeviceRecord loaded from a portable device's
catalog. Track descriptors never own records; they hold a RecordRef, which
stops resolving as soon as the session is closed (the device was unloaded) or
the record is removed.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DeviceRecord:
    dbid: int
    device_path: str = ""
    title: str = ""
    artist: str = ""
    album: str = ""
    album_artist: str = ""
    composer: str = ""
    comment: str = ""
    genre: str = ""
    year: int = 0
    track_nr: int = 0
    tracks: int = 0
    cd_nr: int = 0
    tracklen: int = 0  # milliseconds
    bitrate: int = 0
    samplerate: int = 0
    size: int = 0
    time_modified: int = 0  # seconds since the epoch
    sort_title: str = ""
    sort_artist: str = ""
    sort_album: str = ""
    sort_album_artist: str = ""
    sort_composer: str = ""

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any]) -> "DeviceRecord":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            logger.debug("Ignoring unknown device record keys: %s", ", ".join(unknown))
        values = {key: value for key, value in raw.items() if key in known}
        if "dbid" not in values:
            raise ValueError("device record without dbid")
        for f in fields(cls):
            if f.name not in values or values[f.name] is None:
                continue
            if f.type == "int":
                values[f.name] = int(values[f.name])
            elif f.type == "str":
                values[f.name] = str(values[f.name])
        return cls(**values)


class RecordRef:
    """Non-owning reference to one record of a DeviceDatabase."""

    __slots__ = ("_database", "dbid")

    def __init__(self, database: "DeviceDatabase", dbid: int) -> None:
        self._database = weakref.ref(database)
        self.dbid = dbid

    def resolve(self) -> Optional[DeviceRecord]:
        database = self._database()
        if database is None or not database.is_open:
            return None
        return database.get(self.dbid)

    @property
    def valid(self) -> bool:
        return self.resolve() is not None

    def __repr__(self) -> str:
        return f"RecordRef(dbid={self.dbid}, valid={self.valid})"


class DeviceDatabase:
    """A device catalog loaded into memory for one session."""

    def __init__(self, mount_point: Path | str | None = None) -> None:
        self.mount_point = Path(mount_point) if mount_point else None
        self._records: Dict[int, DeviceRecord] = {}
        self._open = True

    @classmethod
    def from_catalog(cls, path: Path, mount_point: Path | str | None = None) -> "DeviceDatabase":
        """
        Load a YAML catalog exported from a device.

        The catalog is either a list of records or a mapping with a
        ``tracks`` list; ``mount_point`` in the mapping is used when none is
        given explicitly.
        """
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or []
        if isinstance(raw, dict):
            mount_point = mount_point or raw.get("mount_point")
            entries = raw.get("tracks") or []
        else:
            entries = raw
        if not isinstance(entries, list):
            raise ValueError(f"{path}: expected a list of tracks")
        database = cls(mount_point)
        for entry in entries:
            database.add(DeviceRecord.from_mapping(entry))
        logger.debug("Loaded %d device records from %s", len(database), path)
        return database

    @property
    def is_open(self) -> bool:
        return self._open

    def add(self, record: DeviceRecord) -> RecordRef:
        self._ensure_open()
        self._records[record.dbid] = record
        return RecordRef(self, record.dbid)

    def remove(self, dbid: int) -> None:
        self._ensure_open()
        self._records.pop(dbid, None)

    def get(self, dbid: int) -> Optional[DeviceRecord]:
        if not self._open:
            return None
        return self._records.get(dbid)

    def ref(self, dbid: int) -> RecordRef:
        return RecordRef(self, dbid)

    def records(self) -> Iterator[DeviceRecord]:
        if not self._open:
            return iter(())
        return iter(list(self._records.values()))

    def close(self) -> None:
        """Unload the session; every RecordRef into it stops resolving."""
        if self._open:
            logger.debug("Closing device database with %d records", len(self._records))
        self._records.clear()
        self._open = False

    def _ensure_open(self) -> None:
        if not self._open:
            raise RuntimeError("device database is closed")

    def __len__(self) -> int:
        return len(self._records)

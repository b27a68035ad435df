"""
Collections own the track descriptors they enumerate.

DirectoryCollection restores FilesystemTracks from the TrackCache when the
cached record is still fresh and refreshes the rest on a worker pool.
DeviceCollection wraps every record of a DeviceDatabase session in a
DeviceTrack.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Generic, Iterable, Iterator, Optional, TypeVar

from .cache import TrackCache
from .config import DeviceSettings
from .device_db import DeviceDatabase
from .errors import CacheFormatError
from .scanner import LibraryScanner
from .tagging import TagReader
from .tracks import DeviceTrack, FilesystemTrack, Track

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Track)


@dataclass(slots=True)
class LoadReport:
    cached: int = 0
    refreshed: int = 0
    failed: int = 0
    removed: int = 0
    invalid: int = 0
    stale: int = 0
    pruned: int = 0

    @property
    def loaded(self) -> int:
        return self.cached + self.refreshed

    def summary(self) -> str:
        return (
            f"{self.loaded} track(s): {self.cached} from cache, {self.refreshed} read, "
            f"{self.failed} unreadable, {self.removed} removed"
        )


class Collection(Generic[T]):
    def __init__(self) -> None:
        self._tracks: Dict[str, T] = {}

    def get(self, key: str) -> Optional[T]:
        return self._tracks.get(key)

    def keys(self) -> list[str]:
        return list(self._tracks)

    def tracks(self) -> list[T]:
        return list(self._tracks.values())

    def clear(self) -> None:
        self._tracks.clear()

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, key: object) -> bool:
        return key in self._tracks

    def __iter__(self) -> Iterator[T]:
        return iter(self.tracks())


class DirectoryCollection(Collection[FilesystemTrack]):
    def __init__(
        self,
        scanner: LibraryScanner,
        cache: Optional[TrackCache] = None,
        worker_concurrency: int = 4,
        tag_reader: Optional[TagReader] = None,
    ) -> None:
        super().__init__()
        self.scanner = scanner
        self.cache = cache
        self.worker_concurrency = max(1, worker_concurrency)
        self.tag_reader = tag_reader or TagReader()

    @staticmethod
    def key_for(path: Path | str) -> str:
        return os.path.abspath(path)

    def load(self) -> LoadReport:
        """
        Build the collection from scratch.

        Fresh cache records are used as-is; missing, unrecognised and stale
        ones are refreshed from their files. Files that cannot be read are
        left out, and cache records for files that are gone are pruned.
        """
        report = LoadReport()
        self.clear()
        pending: list[FilesystemTrack] = []
        seen: list[str] = []
        for file_path in self.scanner.iter_files():
            key = self.key_for(file_path)
            seen.append(key)
            track, fresh = self._restore(key, report)
            if fresh:
                self._tracks[key] = track
                report.cached += 1
            else:
                pending.append(track)
        self._refresh_tracks(pending, report, keep_failed=False)
        if self.cache is not None:
            report.pruned = self.cache.prune(seen)
        logger.info("Loaded collection: %s", report.summary())
        return report

    def refresh(self) -> LoadReport:
        """
        Bring an already loaded collection up to date.

        Tracks whose file vanished are dropped, tracks whose size or
        modification time changed are re-read, and new files are added.
        """
        report = LoadReport()
        changed: list[FilesystemTrack] = []
        for key, track in list(self._tracks.items()):
            try:
                st = os.stat(key)
            except OSError:
                self.remove_path(key)
                report.removed += 1
                continue
            if track.is_stale(st):
                report.stale += 1
                changed.append(track)
            else:
                report.cached += 1
        added = [
            FilesystemTrack(key, self.tag_reader)
            for key in (self.key_for(p) for p in self.scanner.iter_files())
            if key not in self._tracks
        ]
        # A changed file that can no longer be read keeps its previous attributes.
        self._refresh_tracks(changed, report, keep_failed=True)
        self._refresh_tracks(added, report, keep_failed=False)
        logger.info("Refreshed collection: %s", report.summary())
        return report

    def refresh_path(self, path: Path | str) -> bool:
        """Re-read one file after a change notification; returns True if the track is present afterwards."""
        key = self.key_for(path)
        candidate = Path(key)
        if not candidate.is_file() or not self.scanner.should_include(candidate):
            self.remove_path(key)
            return False
        if not self.scanner.is_under_root(candidate):
            return False
        track = self._tracks.get(key)
        if track is not None and not track.is_stale():
            return True
        track = track or FilesystemTrack(key, self.tag_reader)
        if not track.refresh():
            return key in self._tracks
        self._store(key, track)
        return True

    def remove_path(self, path: Path | str) -> None:
        key = self.key_for(path)
        if self._tracks.pop(key, None) is not None:
            logger.debug("Removed %s from collection", key)
        if self.cache is not None:
            self.cache.delete_record(key)

    def _restore(self, key: str, report: LoadReport) -> tuple[FilesystemTrack, bool]:
        track = FilesystemTrack(key, self.tag_reader)
        if self.cache is None:
            return track, False
        blob = self.cache.get_record(key)
        if blob is None:
            return track, False
        try:
            track.unserialize(blob)
        except CacheFormatError as exc:
            logger.debug("Discarding cache record for %s: %s", key, exc)
            report.invalid += 1
            return track, False
        if track.is_stale():
            report.stale += 1
            return track, False
        return track, True

    def _refresh_tracks(self, tracks: Iterable[FilesystemTrack], report: LoadReport, keep_failed: bool) -> None:
        tracks = list(tracks)
        if not tracks:
            return
        with ThreadPoolExecutor(max_workers=self.worker_concurrency) as pool:
            futures = {pool.submit(track.refresh): track for track in tracks}
            for future in as_completed(futures):
                track = futures[future]
                try:
                    ok = future.result()
                except Exception:  # pragma: no cover - logged and skipped
                    logger.exception("Worker failed to refresh %s", track.path)
                    ok = False
                if ok:
                    self._store(track.path, track)
                    report.refreshed += 1
                    continue
                report.failed += 1
                if not keep_failed:
                    self._tracks.pop(track.path, None)

    def _store(self, key: str, track: FilesystemTrack) -> None:
        self._tracks[key] = track
        if self.cache is None:
            return
        try:
            record = track.serialize()
        except ValueError as exc:
            logger.warning("Not caching %s: %s", key, exc)
            return
        self.cache.set_record(key, record, track.mtime_ns, track.size)


class DeviceCollection(Collection[DeviceTrack]):
    def __init__(self, database: DeviceDatabase, settings: Optional[DeviceSettings] = None) -> None:
        super().__init__()
        self.database = database
        self.settings = settings or DeviceSettings()

    def load(self) -> int:
        self.clear()
        for record in self.database.records():
            self._tracks[str(record.dbid)] = DeviceTrack(self.database.ref(record.dbid))
        self.apply_sort_options()
        logger.info("Loaded %d device track(s)", len(self._tracks))
        return len(self._tracks)

    def refresh(self) -> int:
        """Drop tracks whose record is gone and pick up records added since load()."""
        for key, track in list(self._tracks.items()):
            if not track.refresh():
                del self._tracks[key]
        for record in self.database.records():
            key = str(record.dbid)
            if key not in self._tracks:
                track = DeviceTrack(self.database.ref(record.dbid))
                self._apply_sort_options(track)
                self._tracks[key] = track
        return len(self._tracks)

    def apply_sort_options(self) -> None:
        for track in self._tracks.values():
            self._apply_sort_options(track)

    def _apply_sort_options(self, track: DeviceTrack) -> None:
        track.apply_sort_options(
            self.settings.case_insensitive_sort,
            self.settings.ignore_common_prefixes,
        )

    def sorted_tracks(self) -> list[DeviceTrack]:
        return sorted(self._tracks.values(), key=lambda track: track.sort_key())

    def close(self) -> None:
        self.database.close()
        self.clear()

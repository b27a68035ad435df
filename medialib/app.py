from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .cache import TrackCache
from .collection import DeviceCollection, DirectoryCollection
from .config import Settings
from .device_db import DeviceDatabase
from .scanner import LibraryScanner
from .tagging import TagReader

logger = logging.getLogger(__name__)


@dataclass
class MedialibApp:
    settings: Settings
    scanner: LibraryScanner
    tag_reader: TagReader
    cache: TrackCache | None = None
    _collection: DirectoryCollection | None = None

    @classmethod
    def create(cls, settings: Settings) -> "MedialibApp":
        cache: TrackCache | None = None
        if settings.cache.enabled:
            cache = TrackCache(settings.cache.path)
        else:
            logger.debug("Track cache disabled; every file will be read")
        return cls(
            settings=settings,
            scanner=LibraryScanner(settings.library),
            tag_reader=TagReader(),
            cache=cache,
        )

    def get_collection(self) -> DirectoryCollection:
        if self._collection is None:
            self._collection = DirectoryCollection(
                self.scanner,
                cache=self.cache,
                worker_concurrency=self.settings.scan.worker_concurrency,
                tag_reader=self.tag_reader,
            )
        return self._collection

    def open_device(self, catalog: Optional[Path] = None) -> DeviceCollection:
        path = catalog or self.settings.device.catalog
        if path is None:
            raise FileNotFoundError("No device catalog configured - set device.catalog or pass --catalog.")
        database = DeviceDatabase.from_catalog(Path(path))
        return DeviceCollection(database, self.settings.device)

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .scanner import LibraryScanner

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PathChange:
    path: Path
    removed: bool = False


class WatchHandler(FileSystemEventHandler):
    def __init__(
        self,
        queue: asyncio.Queue[PathChange],
        scanner: LibraryScanner,
        *,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__()
        self.queue = queue
        self.scanner = scanner
        self.loop = loop

    def on_created(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event.src_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event.src_path, event.is_directory, removed=True)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event.src_path, event.is_directory, removed=True)
        dest = getattr(event, "dest_path", None)
        if dest:
            self._maybe_enqueue(dest, event.is_directory)

    def _maybe_enqueue(self, src: str | bytes, is_directory: bool, removed: bool = False) -> None:
        if is_directory:
            return
        if isinstance(src, bytes):
            src = src.decode("utf-8", errors="replace")
        path = Path(src)
        if not self.scanner.should_include(path):
            return
        change = PathChange(path, removed=removed)
        logger.debug("Queued %s: %s", "removal" if removed else "change", path)
        self.loop.call_soon_threadsafe(self.queue.put_nowait, change)

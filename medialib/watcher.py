from __future__ import annotations

import asyncio
import logging
from typing import Optional

from watchdog.observers import Observer

from .collection import DirectoryCollection
from .watchdog_handler import PathChange, WatchHandler

logger = logging.getLogger(__name__)


class CollectionWatcher:
    """
    Keeps a loaded DirectoryCollection in step with the library roots.

    Change notifications arrive on the observer thread and are applied by a
    single worker, so no track descriptor is ever touched concurrently.
    """

    def __init__(self, collection: DirectoryCollection) -> None:
        self.collection = collection
        self.queue: asyncio.Queue[PathChange] = asyncio.Queue()
        self.observer: Optional[Observer] = None

    async def run(self) -> None:
        logger.debug("Starting watcher")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._bootstrap_watchdog, loop)
        worker = asyncio.create_task(self._worker())
        try:
            while True:
                await asyncio.sleep(3600)
        except (asyncio.CancelledError, KeyboardInterrupt):
            logger.debug("Watcher stopping")
        finally:
            self.stop()
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)

    def stop(self) -> None:
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    def _bootstrap_watchdog(self, loop: asyncio.AbstractEventLoop) -> None:
        handler = WatchHandler(self.queue, self.collection.scanner, loop=loop)
        observer = Observer()
        for root in self.collection.scanner.settings.roots:
            observer.schedule(handler, str(root), recursive=self.collection.scanner.settings.recursive)
        observer.start()
        self.observer = observer

    async def _worker(self) -> None:
        while True:
            change = await self.queue.get()
            try:
                await asyncio.get_running_loop().run_in_executor(None, self.apply, change)
            except Exception:  # pragma: no cover - logged and ignored
                logger.exception("Watcher failed to process %s", change.path)
            finally:
                self.queue.task_done()

    def apply(self, change: PathChange) -> None:
        if change.removed:
            self.collection.remove_path(change.path)
            logger.info("Removed %s", change.path)
            return
        if self.collection.refresh_path(change.path):
            logger.info("Updated %s", change.path)

import asyncio
import unittest
from pathlib import Path

from medialib.config import LibrarySettings
from medialib.scanner import LibraryScanner
from medialib.watchdog_handler import PathChange, WatchHandler


class _Event:
    def __init__(self, src_path, *, is_directory: bool = False, dest_path=None) -> None:
        self.src_path = src_path
        self.dest_path = dest_path
        self.is_directory = is_directory


class TestWatchdogHandler(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.queue: asyncio.Queue[PathChange] = asyncio.Queue()
        scanner = LibraryScanner(LibrarySettings(roots=["/music"], include_extensions=[".mp3"]))
        self.handler = WatchHandler(self.queue, scanner, loop=asyncio.get_running_loop())

    async def _next(self) -> PathChange:
        return await asyncio.wait_for(self.queue.get(), timeout=1.0)

    async def test_bytes_src_path_is_decoded(self) -> None:
        self.handler.on_created(_Event(b"/music/Artist/Album/01.mp3"))  # type: ignore[arg-type]
        change = await self._next()
        self.assertEqual(change, PathChange(Path("/music/Artist/Album/01.mp3")))

    async def test_deleted_file_queues_removal(self) -> None:
        self.handler.on_deleted(_Event("/music/01.mp3"))  # type: ignore[arg-type]
        change = await self._next()
        self.assertTrue(change.removed)

    async def test_move_queues_removal_then_change(self) -> None:
        self.handler.on_moved(_Event("/music/old.mp3", dest_path="/music/new.mp3"))  # type: ignore[arg-type]
        first = await self._next()
        second = await self._next()
        self.assertEqual(first, PathChange(Path("/music/old.mp3"), removed=True))
        self.assertEqual(second, PathChange(Path("/music/new.mp3")))

    async def test_directories_and_other_files_are_ignored(self) -> None:
        self.handler.on_modified(_Event("/music/Album", is_directory=True))  # type: ignore[arg-type]
        self.handler.on_modified(_Event("/music/Album/cover.jpg"))  # type: ignore[arg-type]
        await asyncio.sleep(0)
        self.assertTrue(self.queue.empty())


if __name__ == "__main__":
    unittest.main()

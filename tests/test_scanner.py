import tempfile
import unittest
from pathlib import Path

from medialib.config import LibrarySettings
from medialib.scanner import LibraryScanner


class TestLibraryScanner(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        for rel in ("b.mp3", "a.flac", "cover.jpg", "Artist/Album/01.mp3", "Artist/Album/02.MP3", "skip/03.mp3"):
            path = self.root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _names(self, **kwargs) -> list[str]:
        scanner = LibraryScanner(LibrarySettings(roots=[self.root], **kwargs))
        return [str(path.relative_to(self.root)) for path in scanner.iter_files()]

    def test_recursive_walk_filters_extensions(self) -> None:
        self.assertEqual(
            self._names(include_extensions=[".mp3", ".flac"]),
            ["a.flac", "b.mp3", "Artist/Album/01.mp3", "Artist/Album/02.MP3", "skip/03.mp3"],
        )

    def test_exclude_patterns(self) -> None:
        names = self._names(include_extensions=[".mp3"], exclude_patterns=["*/skip/*"])
        self.assertNotIn("skip/03.mp3", names)
        self.assertIn("b.mp3", names)

    def test_non_recursive(self) -> None:
        self.assertEqual(self._names(include_extensions=[".mp3", ".flac"], recursive=False), ["a.flac", "b.mp3"])

    def test_symlinks_are_skipped_unless_followed(self) -> None:
        (self.root / "link.mp3").symlink_to(self.root / "b.mp3")
        self.assertNotIn("link.mp3", self._names(include_extensions=[".mp3"]))
        self.assertIn("link.mp3", self._names(include_extensions=[".mp3"], follow_symlinks=True))

    def test_missing_root_yields_nothing(self) -> None:
        scanner = LibraryScanner(LibrarySettings(roots=[self.root / "missing"]))
        self.assertEqual(list(scanner.iter_files()), [])

    def test_is_under_root(self) -> None:
        scanner = LibraryScanner(LibrarySettings(roots=[self.root], recursive=False))
        self.assertTrue(scanner.is_under_root(self.root / "b.mp3"))
        self.assertFalse(scanner.is_under_root(self.root / "Artist" / "Album" / "01.mp3"))
        self.assertFalse(scanner.is_under_root(Path("/elsewhere/b.mp3")))


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterator
from pathlib import Path

from .config import LibrarySettings


class LibraryScanner:
    """Walks the library roots and yields the audio files a collection should hold."""

    def __init__(self, settings: LibrarySettings) -> None:
        self.settings = settings
        self._exts = {ext.lower() for ext in self.settings.include_extensions}

    def iter_files(self) -> Iterator[Path]:
        for root in self.settings.roots:
            if not root.exists():
                continue
            yield from self.iter_root(root)

    def iter_root(self, root: Path) -> Iterator[Path]:
        if not self.settings.recursive:
            for entry in sorted(root.iterdir()):
                if self._is_candidate(entry):
                    yield entry
            return
        for dirpath, dirnames, filenames in os.walk(root, followlinks=self.settings.follow_symlinks):
            dirnames.sort()
            directory = Path(dirpath)
            for name in sorted(filenames):
                file_path = directory / name
                if self._is_candidate(file_path):
                    yield file_path

    def should_include(self, path: Path) -> bool:
        if path.suffix.lower() not in self._exts:
            return False
        rel = str(path)
        for pattern in self.settings.exclude_patterns:
            if fnmatch.fnmatch(rel, pattern):
                return False
        return True

    def is_under_root(self, path: Path) -> bool:
        for root in self.settings.roots:
            try:
                relative = path.relative_to(root)
            except ValueError:
                continue
            return self.settings.recursive or len(relative.parts) == 1
        return False

    def _is_candidate(self, path: Path) -> bool:
        if path.is_symlink() and not self.settings.follow_symlinks:
            return False
        if not path.is_file():
            return False
        return self.should_include(path)

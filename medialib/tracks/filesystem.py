from __future__ import annotations

import logging
import os
import stat as stat_module
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..byte_handle import FileByteHandle, OpenMode
from ..errors import CacheFormatError, FormatError, SourceUnavailableError
from ..filetypes import FileType, resolve_file_type
from ..models import TrackMetadata
from ..serialization import decode_metadata, encode_metadata
from ..tagging import TagReader
from .base import Track

logger = logging.getLogger(__name__)


class FilesystemTrack(Track):
    """
    Track descriptor for a tagged audio file on disk.

    Reading tags is slow compared to reading a cache record, so collections
    should restore these descriptors with ``unserialize()`` and only call
    ``refresh()`` when ``is_stale()`` says the file changed.
    """

    def __init__(self, path: Path | str, tag_reader: Optional[TagReader] = None) -> None:
        locator = os.path.abspath(path) if str(path) else ""
        self._meta = TrackMetadata(path=locator)
        self._reader = tag_reader or TagReader()
        self.file_type: Optional[FileType] = None

    @property
    def metadata(self) -> TrackMetadata:
        return replace(self._meta)

    @property
    def path(self) -> str:
        return self._meta.path

    def refresh(self) -> bool:
        try:
            meta, file_type = self._read_source()
        except FormatError as exc:
            logger.warning("Skipping unreadable track %s: %s", self._meta.path, exc)
            return False
        except SourceUnavailableError as exc:
            logger.warning("Track source unavailable: %s", exc)
            return False
        self._meta = meta
        self.file_type = file_type
        return True

    def _read_source(self) -> tuple[TrackMetadata, FileType]:
        if not self._meta.path:
            raise SourceUnavailableError("track has no path")
        path = Path(self._meta.path)
        try:
            st = path.stat()
        except OSError as exc:
            raise SourceUnavailableError(f"{path}: {exc}") from exc
        if not stat_module.S_ISREG(st.st_mode):
            raise SourceUnavailableError(f"{path}: not a regular file")

        handle = FileByteHandle(path)
        try:
            handle.open(OpenMode.READ_ONLY)
        except OSError as exc:
            raise SourceUnavailableError(f"{path}: {exc}") from exc
        try:
            file_type = resolve_file_type(handle, str(path))
        finally:
            handle.close()

        meta = self._reader.read(path, file_type)
        meta.path = self._meta.path
        meta.size = st.st_size
        meta.mtime_ns = st.st_mtime_ns
        logger.debug("Read %s tags from %s", file_type.name, path)
        return meta, file_type

    def serialize(self) -> bytes:
        return encode_metadata(self._meta)

    def unserialize(self, data: bytes) -> None:
        meta = decode_metadata(data)
        if self._meta.path and os.path.abspath(meta.path) != self._meta.path:
            raise CacheFormatError(
                f"cache record for {meta.path!r} does not belong to {self._meta.path!r}"
            )
        self._meta = meta

    def is_stale(self, stat_result: Optional[os.stat_result] = None) -> bool:
        """
        Whether the file changed since the attributes were read.

        A descriptor that was never populated, a vanished file, a different
        size or a different modification time all count as stale.
        """
        if not self._meta.mtime_ns and not self._meta.size:
            return True
        if stat_result is None:
            try:
                stat_result = os.stat(self._meta.path)
            except OSError:
                return True
        return (
            stat_result.st_size != self._meta.size
            or stat_result.st_mtime_ns != self._meta.mtime_ns
        )

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional

import mutagen
from mutagen.flac import FLAC
from mutagen.id3 import ID3
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4

from .errors import FormatError, SourceUnavailableError
from .filetypes import FileType
from .models import INT32_FIELDS, INT32_MAX, INT32_MIN, TrackMetadata, _parse_int, _parse_pair

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"\d{4}", re.ASCII)


class TagReader:
    """Reads text tags and audio properties through mutagen, one container at a time."""

    def read(self, path: Path, file_type: FileType) -> TrackMetadata:
        """
        Return the tag and audio-property fields of ``path``.

        ``size`` and ``mtime_ns`` are left at 0; they come from the
        filesystem, not from the tags. Raises SourceUnavailableError when the
        file cannot be opened and FormatError when mutagen rejects it or a
        number does not fit a cache record.
        """
        handlers = {
            FileType.MPEG: self._read_mpeg,
            FileType.MP4: self._read_mp4,
            FileType.FLAC: self._read_flac,
            FileType.OGG: self._read_ogg,
        }
        try:
            meta = handlers[file_type](path)
        except OSError as exc:
            raise SourceUnavailableError(f"{path}: {exc}") from exc
        except (mutagen.MutagenError, ValueError) as exc:
            raise FormatError(f"{path}: {exc}") from exc
        for name in INT32_FIELDS:
            value = getattr(meta, name)
            if not INT32_MIN <= value <= INT32_MAX:
                raise FormatError(f"{path}: {name} {value} out of range")
        meta.path = str(path)
        return meta

    def _read_mpeg(self, path: Path) -> TrackMetadata:
        audio = MP3(path)
        meta = TrackMetadata()
        self._apply_info(meta, audio)
        tags = audio.tags
        if not isinstance(tags, ID3):
            return meta
        meta.title = self._id3_text(tags, "TIT2")
        meta.artist = self._id3_text(tags, "TPE1")
        meta.album = self._id3_text(tags, "TALB")
        meta.album_artist = self._id3_text(tags, "TPE2")
        meta.composer = self._id3_text(tags, "TCOM")
        meta.genre = self._id3_text(tags, "TCON")
        meta.comment = self._id3_comment(tags)
        meta.year = self._parse_year(self._id3_text(tags, "TDRC") or self._id3_text(tags, "TYER"))
        number, total = _parse_pair(self._id3_text(tags, "TRCK"))
        meta.track_number = number or 0
        meta.track_count = total or 0
        disc, _ = _parse_pair(self._id3_text(tags, "TPOS"))
        meta.disc_number = disc or 0
        return meta

    def _read_mp4(self, path: Path) -> TrackMetadata:
        audio = MP4(path)
        meta = TrackMetadata()
        self._apply_info(meta, audio)
        if audio.tags is None:
            return meta
        meta.title = self._mp4_text(audio, "\xa9nam")
        meta.artist = self._mp4_text(audio, "\xa9ART")
        meta.album = self._mp4_text(audio, "\xa9alb")
        meta.album_artist = self._mp4_text(audio, "aART")
        meta.composer = self._mp4_text(audio, "\xa9wrt") or self._mp4_text(
            audio, "----:com.apple.iTunes:COMPOSER"
        )
        meta.comment = self._mp4_text(audio, "\xa9cmt")
        meta.genre = self._mp4_text(audio, "\xa9gen")
        meta.year = self._parse_year(self._mp4_text(audio, "\xa9day"))
        number, total = self._mp4_pair(audio, "trkn")
        meta.track_number = number or 0
        meta.track_count = total or 0
        disc, _ = self._mp4_pair(audio, "disk")
        meta.disc_number = disc or 0
        return meta

    def _read_flac(self, path: Path) -> TrackMetadata:
        return self._read_vorbis(FLAC(path))

    def _read_ogg(self, path: Path) -> TrackMetadata:
        audio = mutagen.File(path)
        if audio is None:
            raise FormatError(f"{path}: unsupported Ogg stream")
        return self._read_vorbis(audio)

    def _read_vorbis(self, audio: Any) -> TrackMetadata:
        meta = TrackMetadata()
        self._apply_info(meta, audio)
        if audio.tags is None:
            return meta
        meta.title = self._vorbis_text(audio, "title")
        meta.artist = self._vorbis_text(audio, "artist")
        meta.album = self._vorbis_text(audio, "album")
        meta.album_artist = self._vorbis_text(audio, "albumartist") or self._vorbis_text(
            audio, "album artist"
        )
        meta.composer = self._vorbis_text(audio, "composer")
        meta.comment = self._vorbis_text(audio, "comment") or self._vorbis_text(
            audio, "description"
        )
        meta.genre = self._vorbis_text(audio, "genre")
        meta.year = self._parse_year(self._vorbis_text(audio, "date") or self._vorbis_text(audio, "year"))
        number, total = _parse_pair(self._vorbis_text(audio, "tracknumber") or None)
        meta.track_number = number or 0
        meta.track_count = total or _parse_int(
            self._vorbis_text(audio, "tracktotal") or self._vorbis_text(audio, "totaltracks") or None
        ) or 0
        disc, _ = _parse_pair(self._vorbis_text(audio, "discnumber") or None)
        meta.disc_number = disc or 0
        return meta

    @staticmethod
    def _apply_info(meta: TrackMetadata, audio: Any) -> None:
        info = getattr(audio, "info", None)
        if info is None:
            raise FormatError("no audio properties")
        length = getattr(info, "length", 0) or 0
        meta.length_ms = int(round(length * 1000))
        # Reported in kbit/s, exact for CBR and an average for VBR.
        meta.bitrate = int(getattr(info, "bitrate", 0) or 0) // 1000
        meta.sample_rate = int(getattr(info, "sample_rate", 0) or 0)

    @staticmethod
    def _id3_text(tags: ID3, frame_id: str) -> str:
        frame = tags.getall(frame_id)
        if not frame or not getattr(frame[0], "text", None):
            return ""
        return str(frame[0].text[0])

    @staticmethod
    def _id3_comment(tags: ID3) -> str:
        frames = tags.getall("COMM")
        if not frames:
            return ""
        preferred = [frame for frame in frames if not frame.desc] or frames
        text = preferred[0].text
        return str(text[0]) if text else ""

    @staticmethod
    def _mp4_text(audio: MP4, key: str) -> str:
        value = audio.get(key)
        if not value:
            return ""
        first = value[0]
        if isinstance(first, bytes):
            return first.decode("utf-8", errors="replace")
        return str(first)

    @staticmethod
    def _mp4_pair(audio: MP4, key: str) -> tuple[Optional[int], Optional[int]]:
        value = audio.get(key)
        if not value or not isinstance(value, list):
            return None, None
        return _parse_pair(value[0])

    @staticmethod
    def _vorbis_text(audio: Any, key: str) -> str:
        values = audio.get(key)
        if not values:
            return ""
        return str(values[0])

    @staticmethod
    def _parse_year(value: Optional[str]) -> int:
        if not value:
            return 0
        match = _YEAR_RE.search(str(value))
        if not match:
            return 0
        return int(match.group(0))

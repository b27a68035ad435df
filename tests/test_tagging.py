import tempfile
import unittest
from pathlib import Path

from audio_fixtures import mpeg_frames, write_mp3

from medialib.errors import FormatError, SourceUnavailableError
from medialib.filetypes import FileType
from medialib.models import TrackMetadata, _parse_int, _parse_pair
from medialib.tagging import TagReader


class TestParseHelpers(unittest.TestCase):
    def test_parse_year_accepts_mutagen_id3_timestamp(self) -> None:
        from mutagen.id3 import ID3TimeStamp

        self.assertEqual(TagReader._parse_year(ID3TimeStamp("1998")), 1998)

    def test_parse_year_variants(self) -> None:
        self.assertEqual(TagReader._parse_year("2004-05-01"), 2004)
        self.assertEqual(TagReader._parse_year("unknown"), 0)
        self.assertEqual(TagReader._parse_year(None), 0)

    def test_parse_pair(self) -> None:
        self.assertEqual(_parse_pair("03/12"), (3, 12))
        self.assertEqual(_parse_pair("7"), (7, None))
        self.assertEqual(_parse_pair((2, 0)), (2, None))
        self.assertEqual(_parse_pair(None), (None, None))

    def test_parse_int_rejects_non_ascii_digits(self) -> None:
        self.assertIsNone(_parse_int("²"))
        self.assertIsNone(_parse_int("٣"))
        self.assertEqual(_parse_pair("²/¹²"), (None, None))

    def test_parse_int_rejects_values_beyond_int32(self) -> None:
        self.assertIsNone(_parse_int("99999999999"))
        self.assertIsNone(_parse_int(2**31))
        self.assertEqual(_parse_int(2**31 - 1), 2**31 - 1)
        self.assertEqual(_parse_int(" 12/3 "), 12)


class TestTagReader(unittest.TestCase):
    def test_untagged_mp3_has_only_audio_properties(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "bare.mp3"
            path.write_bytes(mpeg_frames(40))
            meta = TagReader().read(path, FileType.MPEG)
        self.assertEqual(meta.title, "")
        self.assertEqual(meta.sample_rate, 44100)
        self.assertEqual(meta.size, 0)
        self.assertEqual(meta.path, str(path))

    def test_wrong_container_is_a_format_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_mp3(Path(tmpdir) / "a.mp3", title="A")
            with self.assertRaises(FormatError):
                TagReader().read(path, FileType.FLAC)

    def test_missing_file_is_unavailable(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(SourceUnavailableError):
                TagReader().read(Path(tmpdir) / "missing.mp3", FileType.MPEG)

    def test_value_error_from_container_is_a_format_error(self) -> None:
        class _Reader(TagReader):
            def _read_mpeg(self, path):
                raise ValueError("invalid literal for int()")

        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_mp3(Path(tmpdir) / "a.mp3", title="A")
            with self.assertRaises(FormatError):
                _Reader().read(path, FileType.MPEG)

    def test_number_outside_int32_is_a_format_error(self) -> None:
        class _Reader(TagReader):
            def _read_mpeg(self, path):
                return TrackMetadata(title="Long", length_ms=2**40)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_mp3(Path(tmpdir) / "a.mp3", title="A")
            with self.assertRaises(FormatError) as ctx:
                _Reader().read(path, FileType.MPEG)
        self.assertIn("length_ms", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()

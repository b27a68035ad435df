import os
import tempfile
import unittest
from pathlib import Path

from audio_fixtures import write_mp3

from medialib.errors import CacheFormatError
from medialib.filetypes import FileType
from medialib.tagging import TagReader
from medialib.tracks import FilesystemTrack


class TestFilesystemTrack(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _tagged(self, name: str = "01.mp3", **tags) -> Path:
        defaults = dict(
            title="Song",
            artist="Artist",
            album="Album",
            album_artist="Album Artist",
            composer="Composer",
            comment="Nice",
            genre="Rock",
            year=1984,
            track="3/12",
            disc="2/2",
        )
        defaults.update(tags)
        return write_mp3(self.root / name, **defaults)

    def test_new_descriptor_has_defaults(self) -> None:
        track = FilesystemTrack(self.root / "01.mp3")
        self.assertEqual(track.title, "")
        self.assertEqual(track.year, 0)
        self.assertIsNone(track.modify_time)
        self.assertTrue(track.is_stale())

    def test_refresh_reads_tags_and_audio_properties(self) -> None:
        path = self._tagged()
        track = FilesystemTrack(path)
        self.assertTrue(track.refresh())
        self.assertEqual(track.path, os.path.abspath(path))
        self.assertEqual(track.file_type, FileType.MPEG)
        self.assertEqual(track.title, "Song")
        self.assertEqual(track.artist, "Artist")
        self.assertEqual(track.album, "Album")
        self.assertEqual(track.album_artist, "Album Artist")
        self.assertEqual(track.composer, "Composer")
        self.assertEqual(track.comment, "Nice")
        self.assertEqual(track.genre, "Rock")
        self.assertEqual(track.year, 1984)
        self.assertEqual(track.track_number, 3)
        self.assertEqual(track.track_count, 12)
        self.assertEqual(track.disc_number, 2)
        self.assertEqual(track.sample_rate, 44100)
        self.assertEqual(track.bitrate, 128)
        self.assertGreater(track.length_ms, 0)
        st = path.stat()
        self.assertEqual(track.size, st.st_size)
        self.assertEqual(track.mtime_ns, st.st_mtime_ns)
        self.assertIsNotNone(track.modify_time)
        self.assertFalse(track.is_stale())

    def test_title_and_year_survive_a_cache_round_trip(self) -> None:
        path = write_mp3(self.root / "x.mp3", title="X", year=2000)
        original = FilesystemTrack(path)
        self.assertTrue(original.refresh())

        restored = FilesystemTrack(path)
        restored.unserialize(original.serialize())
        self.assertEqual(restored.title, "X")
        self.assertEqual(restored.year, 2000)
        self.assertEqual(restored.metadata, original.metadata)
        self.assertEqual(restored, original)

    def test_unserialize_into_descriptor_without_path(self) -> None:
        path = write_mp3(self.root / "x.mp3", title="X")
        original = FilesystemTrack(path)
        self.assertTrue(original.refresh())
        restored = FilesystemTrack("")
        restored.unserialize(original.serialize())
        self.assertEqual(restored.path, original.path)

    def test_bad_cache_record_leaves_descriptor_untouched(self) -> None:
        path = self._tagged()
        track = FilesystemTrack(path)
        self.assertTrue(track.refresh())
        before = track.metadata
        for data in (b"", b"garbage", track.serialize()[:-1]):
            with self.subTest(data=data[:8]):
                with self.assertRaises(CacheFormatError):
                    track.unserialize(data)
                self.assertEqual(track.metadata, before)

    def test_failed_unserialize_still_allows_refresh(self) -> None:
        path = self._tagged(title="Fresh")
        track = FilesystemTrack(path)
        with self.assertRaises(CacheFormatError):
            track.unserialize(b"\x00\x01")
        self.assertEqual(track.title, "")
        self.assertTrue(track.refresh())
        self.assertEqual(track.title, "Fresh")

    def test_record_for_another_file_is_rejected(self) -> None:
        first = FilesystemTrack(self._tagged("a.mp3", title="A"))
        self.assertTrue(first.refresh())
        second = FilesystemTrack(self.root / "b.mp3")
        with self.assertRaises(CacheFormatError):
            second.unserialize(first.serialize())
        self.assertEqual(second.title, "")

    def test_refresh_after_delete_keeps_previous_values(self) -> None:
        path = self._tagged(title="Kept")
        track = FilesystemTrack(path)
        self.assertTrue(track.refresh())
        before = track.metadata
        path.unlink()
        with self.assertLogs("medialib.tracks.filesystem", level="WARNING"):
            self.assertFalse(track.refresh())
        self.assertEqual(track.metadata, before)
        self.assertTrue(track.is_stale())

    def test_refresh_of_unrecognised_file_fails(self) -> None:
        path = self.root / "notes.mp3"
        path.write_bytes(b"this is not audio at all")
        track = FilesystemTrack(path)
        self.assertFalse(track.refresh())
        self.assertEqual(track.title, "")

    def test_refresh_of_directory_fails(self) -> None:
        track = FilesystemTrack(self.root)
        self.assertFalse(track.refresh())

    def test_unicode_digit_track_number_is_ignored(self) -> None:
        path = self._tagged(track="²")
        track = FilesystemTrack(path)
        self.assertTrue(track.refresh())
        self.assertEqual(track.track_number, 0)
        self.assertEqual(track.title, "Song")

    def test_out_of_range_track_number_still_serializes(self) -> None:
        path = self._tagged(track="99999999999/12")
        track = FilesystemTrack(path)
        self.assertTrue(track.refresh())
        self.assertEqual(track.track_number, 0)
        self.assertEqual(track.track_count, 12)
        restored = FilesystemTrack(path)
        restored.unserialize(track.serialize())
        self.assertEqual(restored.metadata, track.metadata)

    def test_reader_value_error_fails_refresh(self) -> None:
        class _BrokenReader(TagReader):
            def _read_mpeg(self, path):
                raise ValueError("bad frame value")

        track = FilesystemTrack(self._tagged(), tag_reader=_BrokenReader())
        with self.assertLogs("medialib.tracks.filesystem", level="WARNING"):
            self.assertFalse(track.refresh())
        self.assertEqual(track.title, "")

    def test_changed_file_is_stale(self) -> None:
        path = self._tagged()
        track = FilesystemTrack(path)
        self.assertTrue(track.refresh())
        with path.open("ab") as fh:
            fh.write(b"\x00" * 16)
        self.assertTrue(track.is_stale())

    def test_touched_file_is_stale(self) -> None:
        path = self._tagged()
        track = FilesystemTrack(path)
        self.assertTrue(track.refresh())
        st = path.stat()
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))
        self.assertTrue(track.is_stale())

    def test_metadata_is_a_copy(self) -> None:
        track = FilesystemTrack(self._tagged())
        self.assertTrue(track.refresh())
        snapshot = track.metadata
        snapshot.title = "changed"
        self.assertEqual(track.title, "Song")


if __name__ == "__main__":
    unittest.main()

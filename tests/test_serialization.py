import struct
import unittest

from medialib.errors import CacheFormatError
from medialib.models import TrackMetadata
from medialib.serialization import FORMAT_VERSION, MAGIC, decode_metadata, encode_metadata


def _sample() -> TrackMetadata:
    return TrackMetadata(
        path="/music/Artist/Album/01.mp3",
        title="Ünïcode Title",
        artist="Artist",
        album="Album",
        album_artist="Various",
        composer="Composer",
        comment="",
        genre="Jazz",
        year=1999,
        track_number=1,
        track_count=12,
        disc_number=2,
        length_ms=172_500,
        bitrate=320,
        sample_rate=44100,
        size=7_340_032,
        mtime_ns=1_700_000_000_123_456_789,
    )


class TestCacheRecord(unittest.TestCase):
    def test_record_starts_with_magic_and_version(self) -> None:
        blob = encode_metadata(_sample())
        self.assertEqual(blob[:4], MAGIC)
        self.assertEqual(struct.unpack(">H", blob[4:6])[0], FORMAT_VERSION)

    def test_decode_restores_every_field(self) -> None:
        meta = _sample()
        self.assertEqual(decode_metadata(encode_metadata(meta)), meta)

    def test_defaults_encode(self) -> None:
        self.assertEqual(decode_metadata(encode_metadata(TrackMetadata())), TrackMetadata())

    def test_rejects_empty_and_foreign_data(self) -> None:
        for data in (b"", b"\x00", b"NOPE\x00\x01", b"not a cache record at all"):
            with self.subTest(data=data):
                with self.assertRaises(CacheFormatError):
                    decode_metadata(data)

    def test_rejects_unknown_version(self) -> None:
        blob = bytearray(encode_metadata(_sample()))
        blob[4:6] = struct.pack(">H", FORMAT_VERSION + 1)
        with self.assertRaisesRegex(CacheFormatError, "version"):
            decode_metadata(bytes(blob))

    def test_rejects_truncated_and_padded_records(self) -> None:
        blob = encode_metadata(_sample())
        with self.assertRaisesRegex(CacheFormatError, "truncated"):
            decode_metadata(blob[:-3])
        with self.assertRaisesRegex(CacheFormatError, "trailing"):
            decode_metadata(blob + b"\x00")

    def test_int32_overflow_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            encode_metadata(TrackMetadata(year=2**31))


if __name__ == "__main__":
    unittest.main()

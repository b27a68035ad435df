import unittest

from medialib.bitwise import SYNCHSAFE_MAX, decode_synchsafe32, encode_synchsafe32, synchsafe_bytes
from medialib.byte_handle import MemoryByteHandle


class TestSynchsafe(unittest.TestCase):
    def test_decode_257(self) -> None:
        handle = MemoryByteHandle(bytes([0x00, 0x00, 0x02, 0x01]))
        self.assertEqual(decode_synchsafe32(handle), 257)

    def test_encode_257(self) -> None:
        handle = MemoryByteHandle(bytes(4))
        encode_synchsafe32(handle, 0, 257)
        self.assertEqual(handle.getvalue(), bytes([0x00, 0x00, 0x02, 0x01]))

    def test_0xffff_example(self) -> None:
        self.assertEqual(synchsafe_bytes(0xFFFF), bytes([0x00, 0x03, 0x7F, 0x7F]))

    def test_round_trip_at_offset(self) -> None:
        for value in (0, 1, 127, 128, 16383, 16384, 0x0ABCDEF, SYNCHSAFE_MAX - 1):
            with self.subTest(value=value):
                handle = MemoryByteHandle(b"\xaa" * 10)
                encode_synchsafe32(handle, 3, value)
                self.assertEqual(decode_synchsafe32(handle, 3), value)
                # Neighbouring bytes are untouched.
                self.assertEqual(handle.read(0, 3), b"\xaa\xaa\xaa")
                self.assertEqual(handle.read(7, 3), b"\xaa\xaa\xaa")

    def test_encoded_bytes_never_set_high_bit(self) -> None:
        for byte in synchsafe_bytes(SYNCHSAFE_MAX - 1):
            self.assertLess(byte, 0x80)

    def test_values_above_28_bits_are_truncated(self) -> None:
        value = SYNCHSAFE_MAX + 300
        handle = MemoryByteHandle(bytes(4))
        encode_synchsafe32(handle, 0, value)
        self.assertEqual(decode_synchsafe32(handle), value % SYNCHSAFE_MAX)

    def test_decode_ignores_reserved_bits(self) -> None:
        handle = MemoryByteHandle(bytes([0x80, 0x80, 0x82, 0x81]))
        self.assertEqual(decode_synchsafe32(handle), 257)


if __name__ == "__main__":
    unittest.main()

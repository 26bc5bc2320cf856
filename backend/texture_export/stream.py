"""
Little-endian byte and bit readers shared by the SWF and ABC decoders.
"""

import struct
from typing import Type

from texture_export.errors import SwfFormatError


class ByteReader:
    """Sequential reader over an immutable byte buffer."""

    def __init__(self, data: bytes, error: Type[SwfFormatError] = SwfFormatError):
        self.data = data
        self.pos = 0
        self._error = error

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def read_bytes(self, count: int) -> bytes:
        if count < 0 or self.pos + count > len(self.data):
            raise self._error(
                f"Unexpected end of data: wanted {count} bytes at offset {self.pos}, "
                f"{self.remaining} available"
            )
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_u16(self) -> int:
        return struct.unpack("<H", self.read_bytes(2))[0]

    def read_u32(self) -> int:
        return struct.unpack("<I", self.read_bytes(4))[0]

    def read_f64(self) -> float:
        return struct.unpack("<d", self.read_bytes(8))[0]

    def read_cstring(self, encoding: str = "utf-8") -> str:
        """Read a null-terminated string."""
        end = self.data.find(b"\x00", self.pos)
        if end < 0:
            raise self._error(f"Unterminated string at offset {self.pos}")
        raw = self.data[self.pos:end]
        self.pos = end + 1
        return raw.decode(encoding, errors="replace")

    def read_u30(self) -> int:
        """Read a variable-length unsigned integer (7 bits per byte, at most 5 bytes)."""
        result = 0
        for shift in range(0, 35, 7):
            byte = self.read_u8()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result & 0xFFFFFFFF
        raise self._error(f"Variable-length integer wider than 5 bytes at offset {self.pos}")

    def read_s32(self) -> int:
        """Read a variable-length integer and reinterpret it as signed 32-bit."""
        value = self.read_u30()
        if value & 0x80000000:
            value -= 1 << 32
        return value


class BitReader:
    """Big-endian bit reader used for bit-packed SWF records (RECT)."""

    def __init__(self, reader: ByteReader):
        self._reader = reader
        self._byte = 0
        self._bits_left = 0

    def read_ubits(self, count: int) -> int:
        value = 0
        for _ in range(count):
            if self._bits_left == 0:
                self._byte = self._reader.read_u8()
                self._bits_left = 8
            self._bits_left -= 1
            value = (value << 1) | ((self._byte >> self._bits_left) & 1)
        return value

    def read_sbits(self, count: int) -> int:
        if count == 0:
            return 0
        value = self.read_ubits(count)
        if value & (1 << (count - 1)):
            value -= 1 << count
        return value

    def align(self) -> None:
        """Discard the rest of the current byte."""
        self._bits_left = 0

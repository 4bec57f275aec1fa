"""CRC-64 (ECMA-182 polynomial, MSB-first) as used for archive entry keys."""

from __future__ import annotations

from typing import NamedTuple

_POLY = 0x42F0E1EBA9EA3693
_MASK64 = 0xFFFFFFFFFFFFFFFF
_MASK32 = 0xFFFFFFFF


def _build_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        crc = i << 56
        for _ in range(8):
            if crc & (1 << 63):
                crc = ((crc << 1) ^ _POLY) & _MASK64
            else:
                crc = (crc << 1) & _MASK64
        table.append(crc)
    return tuple(table)


_TABLE = _build_table()


class Crc64(NamedTuple):
    """A 64-bit checksum split into its low and high 32-bit halves."""

    low: int
    high: int

    @property
    def value(self) -> int:
        """The checksum as a single 64-bit integer."""
        return (self.high << 32) | self.low


def crc64(data: bytes | bytearray | memoryview) -> Crc64:
    """Compute the checksum of ``data``, starting from and finishing with an all-ones mask."""
    crc = _MASK64
    for byte in memoryview(data).cast("B"):
        index = ((crc >> 56) ^ byte) & 0xFF
        crc = ((crc << 8) & _MASK64) ^ _TABLE[index]
    crc ^= _MASK64
    return Crc64(crc & _MASK32, crc >> 32)
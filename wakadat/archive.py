"""Entry table parsing and data decoding for ACV1 ``.dat`` archives."""

from __future__ import annotations

import dataclasses
import enum
import os
import struct
import zlib
from collections.abc import Iterable
from dataclasses import dataclass, field

from wakadat.crc64 import crc64

MAGIC = 0x31564341
ENTRY_SIZE = 21

_M1 = 0x8B6A4E5F  # masks the entry count and entry offsets
_M2 = 0xBABA18A9  # masks the data of type 6 entries
_MASK32 = 0xFFFFFFFF

_DWORD = struct.Struct("<I")
_CRC_PAIR = struct.Struct("<II")
_SIZES = struct.Struct("<III")


class ArchiveFormatError(ValueError):
    """The archive or one of its entries cannot be read."""


class EncryptType(enum.IntEnum):
    """How the data of an entry is stored."""

    PLAIN = 0
    KEYED = 1
    KEYED_ALT = 5
    PACKED = 6


def _as_bytes(key: bytes | bytearray | str) -> bytes:
    return os.fsencode(key) if isinstance(key, str) else bytes(key)


def _signed_char(key: bytes, index: int) -> int:
    if index >= len(key):
        return 0
    value = key[index]
    return value - 0x100 if value >= 0x80 else value


def _xor(data: bytes, mask: bytes) -> bytes:
    value = int.from_bytes(data, "little") ^ int.from_bytes(mask, "little")
    return value.to_bytes(len(data), "little")


def listkey_from_crc(low: int, high: int) -> int:
    """Derive the lookup key of an entry from the two halves of its checksum."""
    return (((high << 6) + low + (high >> 2)) & _MASK32) ^ high


def listkey_from_key(key: bytes | str) -> int:
    """Derive the lookup key of an entry from its relative path."""
    checksum = crc64(_as_bytes(key))
    return listkey_from_crc(checksum.low, checksum.high)


def build_key_index(keys: Iterable[bytes | str]) -> dict[int, bytes]:
    """Map lookup keys to the paths they come from; later paths win."""
    return {listkey_from_key(key): _as_bytes(key) for key in keys}


def hex_dword(value: int) -> str:
    """Format a 32-bit value as eight upper-case hex digits."""
    return f"{value & _MASK32:08X}"


@dataclass(frozen=True)
class FileInfo:
    """One decoded entry of the archive's file table."""

    dat_name: str
    crc_low: int
    crc_high: int
    listkey: int
    encrypt_type: int
    offset: int
    size: int
    unpacked_size: int
    raw: bytes = field(repr=False)
    key: bytes = b""

    @classmethod
    def parse(cls, raw: bytes | bytearray, dat_name: str) -> FileInfo:
        """Decode a 21-byte table entry read from the archive ``dat_name``."""
        raw = bytes(raw)
        if len(raw) != ENTRY_SIZE:
            raise ArchiveFormatError(
                f"an entry needs {ENTRY_SIZE} bytes, got {len(raw)}"
            )
        crc_low, crc_high = _CRC_PAIR.unpack_from(raw, 0)
        offset, size, unpacked_size = _SIZES.unpack_from(raw, 9)
        return cls(
            dat_name=dat_name,
            crc_low=crc_low,
            crc_high=crc_high,
            listkey=listkey_from_crc(crc_low, crc_high),
            encrypt_type=raw[8] ^ (crc_low & 0xFF),
            offset=offset ^ crc_low ^ _M1,
            size=size ^ crc_low,
            unpacked_size=unpacked_size ^ crc_low,
            raw=raw,
        )

    @property
    def kind(self) -> EncryptType | None:
        """The storage type, or None when it is not a known one."""
        try:
            return EncryptType(self.encrypt_type)
        except ValueError:
            return None

    def with_key(self, key: bytes | str) -> FileInfo:
        """Return a copy whose offset and size are unmasked with ``key``."""
        key = _as_bytes(key)
        n = len(key)
        return dataclasses.replace(
            self,
            key=key,
            offset=(_signed_char(key, n >> 1) ^ self.offset) & _MASK32,
            size=(_signed_char(key, n >> 2) ^ self.size) & _MASK32,
        )


def read_file_infos(dat_path: str | os.PathLike) -> list[FileInfo]:
    """Read the file table at the start of the archive at ``dat_path``."""
    path = os.fsdecode(dat_path)
    dat_name = path.replace("\\", "/").rsplit("/", 1)[-1]
    with open(path, "rb") as fh:
        header = fh.read(8)
        if len(header) < 4 or _DWORD.unpack_from(header)[0] != MAGIC:
            raise ArchiveFormatError("unsupported file format")
        if len(header) < 8:
            raise ArchiveFormatError("archive header is truncated")
        count = _DWORD.unpack_from(header, 4)[0] ^ _M1
        if count & 0x80000000:
            count = 0
        infos = []
        for _ in range(count):
            raw = fh.read(ENTRY_SIZE)
            if len(raw) != ENTRY_SIZE:
                raise ArchiveFormatError("file table is truncated")
            infos.append(FileInfo.parse(raw, dat_name))
    return infos


def decrypt_with_key(data: bytes | bytearray, key: bytes | str) -> bytes:
    """Undo the key mask of type 1 and 5 entries; applying it twice restores the input."""
    key = _as_bytes(key)
    buf = bytearray(data)
    if not key:
        return bytes(buf)
    part = len(buf) // len(key)
    if part:
        for i, k in enumerate(key[:-1]):
            start = i * part
            segment = bytes(buf[start:start + part])
            buf[start:start + part] = _xor(segment, bytes([k]) * part)
    return bytes(buf)


def decrypt_type6(data: bytes | bytearray, crc_low: int) -> bytes:
    """Undo the dword mask of type 6 entries; a trailing partial dword is left as is."""
    data = bytes(data)
    whole = len(data) - len(data) % 4
    mask = ((crc_low ^ _M2) & _MASK32).to_bytes(4, "little") * (whole // 4)
    return _xor(data[:whole], mask) + data[whole:]


def _inflate(data: bytes) -> bytes:
    inflater = zlib.decompressobj()
    try:
        out = inflater.decompress(data)
    except zlib.error as exc:
        raise ArchiveFormatError(f"zlib decompression failed: {exc}") from exc
    if not inflater.eof:
        raise ArchiveFormatError("zlib decompression failed: stream is incomplete")
    return out


def decrypt(data: bytes | bytearray, info: FileInfo) -> bytes:
    """Decode the stored data of ``info`` according to its storage type."""
    kind = info.encrypt_type
    if kind in (EncryptType.KEYED, EncryptType.KEYED_ALT):
        return decrypt_with_key(data, info.key)
    if kind == EncryptType.PACKED:
        return _inflate(decrypt_type6(data, info.crc_low))
    return bytes(data)
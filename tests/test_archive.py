import struct
import zlib

import pytest

from wakadat.archive import (
    ArchiveFormatError,
    EncryptType,
    FileInfo,
    build_key_index,
    decrypt,
    decrypt_type6,
    decrypt_with_key,
    hex_dword,
    listkey_from_crc,
    listkey_from_key,
    read_file_infos,
)
from wakadat.crc64 import crc64

M1 = 0x8B6A4E5F
M2 = 0xBABA18A9

RAW = bytes(
    [0x98, 0x42, 0x9E, 0x6B, 0x78, 0x55, 0xD2,
     0xA0, 0x9E, 0x32, 0x52, 0xE7, 0xE0, 0xBC,
     0x42, 0x9E, 0x6B, 0x0E, 0x68, 0x9E, 0x6B]
)


def _pack_entry(crc_low, crc_high, kind, offset, size, unpacked=0):
    return struct.pack(
        "<IIBIII",
        crc_low,
        crc_high,
        (kind ^ crc_low) & 0xFF,
        offset ^ crc_low ^ M1,
        size ^ crc_low,
        unpacked ^ crc_low,
    )


def _write_dat(path, entries, count=None):
    n = len(entries) if count is None else count
    header = struct.pack("<II", 0x31564341, n ^ M1)
    path.write_bytes(header + b"".join(entries))
    return path


def test_parse_source_sample():
    info = FileInfo.parse(RAW, "script.dat")
    assert info.dat_name == "script.dat"
    assert info.encrypt_type == EncryptType.PACKED
    assert info.kind is EncryptType.PACKED
    assert info.offset == 0x00135EF5
    assert info.raw == RAW
    assert info.listkey == listkey_from_crc(info.crc_low, info.crc_high)


@pytest.mark.parametrize(
    "fields",
    [
        (1, 2, 0, 100, 200, 0),
        (0xDEADBEEF, 0x12345678, 6, 0x7FFFFFFF, 4096, 65536),
        (0xFFFFFFFF, 0, 5, 0, 0xFFFFFFFF, 7),
    ],
)
def test_parse_round_trip(fields):
    crc_low, crc_high, kind, offset, size, unpacked = fields
    info = FileInfo.parse(_pack_entry(*fields), "a.dat")
    assert (info.crc_low, info.crc_high) == (crc_low, crc_high)
    assert info.encrypt_type == kind
    assert (info.offset, info.size, info.unpacked_size) == (offset, size, unpacked)


def test_unknown_kind_is_none():
    info = FileInfo.parse(_pack_entry(1, 2, 3, 0, 0), "a.dat")
    assert info.kind is None
    assert info.encrypt_type == 3


@pytest.mark.parametrize("length", [0, 20, 22])
def test_parse_rejects_wrong_length(length):
    with pytest.raises(ArchiveFormatError):
        FileInfo.parse(bytes(length), "a.dat")


def test_listkey_matches_parsed_entry():
    key = b"data/script.txt"
    checksum = crc64(key)
    info = FileInfo.parse(_pack_entry(checksum.low, checksum.high, 1, 0, 0), "a.dat")
    assert info.listkey == listkey_from_key(key)


def test_listkey_str_and_bytes_agree():
    assert listkey_from_key("bgm/title.ogg") == listkey_from_key(b"bgm/title.ogg")


def test_listkey_stays_within_32_bits():
    value = listkey_from_crc(0xFFFFFFFF, 0xFFFFFFFF)
    assert 0 <= value <= 0xFFFFFFFF
    assert listkey_from_crc(0, 0) == 0


def test_build_key_index():
    keys = [b"a.txt", "b/c.png"]
    index = build_key_index(keys)
    assert len(index) == 2
    assert index[listkey_from_key(b"a.txt")] == b"a.txt"
    assert index[listkey_from_key("b/c.png")] == b"b/c.png"


def test_with_key_ascii():
    info = FileInfo.parse(_pack_entry(7, 8, 1, 1000, 2000), "a.dat")
    keyed = info.with_key(b"abcd")
    assert keyed.key == b"abcd"
    assert keyed.offset == info.offset ^ ord("c")
    assert keyed.size == info.size ^ ord("b")
    assert info.key == b""


def test_with_key_high_byte_is_sign_extended():
    info = FileInfo.parse(_pack_entry(7, 8, 1, 1000, 2000), "a.dat")
    keyed = info.with_key(b"\xff")
    assert keyed.offset == info.offset ^ 0xFFFFFFFF
    assert keyed.size == info.size ^ 0xFFFFFFFF


def test_with_empty_key_keeps_values():
    info = FileInfo.parse(_pack_entry(7, 8, 1, 1000, 2000), "a.dat")
    keyed = info.with_key(b"")
    assert (keyed.offset, keyed.size) == (info.offset, info.size)


def test_read_file_infos(tmp_path):
    entries = [_pack_entry(1, 2, 0, 50, 10), _pack_entry(3, 4, 6, 60, 20, 80)]
    dat = _write_dat(tmp_path / "game.dat", entries)
    infos = read_file_infos(dat)
    assert [i.offset for i in infos] == [50, 60]
    assert [i.size for i in infos] == [10, 20]
    assert infos[1].unpacked_size == 80
    assert all(i.dat_name == "game.dat" for i in infos)


def test_read_file_infos_bad_magic(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_bytes(b"NOPE" + bytes(4))
    with pytest.raises(ArchiveFormatError):
        read_file_infos(path)


def test_read_file_infos_truncated(tmp_path):
    dat = _write_dat(tmp_path / "t.dat", [_pack_entry(1, 2, 0, 0, 0)], count=2)
    with pytest.raises(ArchiveFormatError):
        read_file_infos(dat)


def test_read_file_infos_negative_count_is_empty(tmp_path):
    dat = _write_dat(tmp_path / "n.dat", [], count=0x80000000)
    assert read_file_infos(dat) == []


def test_read_file_infos_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file_infos(tmp_path / "missing.dat")


def test_decrypt_with_key_is_involution():
    data = bytes(range(200))
    key = b"some/path.bin"
    once = decrypt_with_key(data, key)
    assert once != data
    assert decrypt_with_key(once, key) == data


def test_decrypt_with_key_segments():
    data = bytes(10)
    result = decrypt_with_key(data, b"ab")
    assert result[:5] == b"a" * 5
    assert result[5:] == data[5:]


def test_decrypt_with_key_empty_or_short():
    data = b"xyz"
    assert decrypt_with_key(data, b"") == data
    assert decrypt_with_key(data, b"longer-key") == data


def test_decrypt_type6_is_involution_and_keeps_tail():
    data = bytes(range(23))
    once = decrypt_type6(data, 0x1234)
    assert once[20:] == data[20:]
    assert decrypt_type6(once, 0x1234) == data


def test_decrypt_type6_zero_mask():
    data = bytes(range(16))
    assert decrypt_type6(data, M2) == data


def test_decrypt_packed_entry():
    payload = b"hello world " * 50
    stored = decrypt_type6(zlib.compress(payload), 0xABCDEF01)
    info = FileInfo.parse(
        _pack_entry(0xABCDEF01, 2, 6, 0, len(stored), len(payload)), "a.dat"
    )
    assert decrypt(stored, info) == payload


def test_decrypt_packed_entry_bad_data():
    info = FileInfo.parse(_pack_entry(1, 2, 6, 0, 8), "a.dat")
    with pytest.raises(ArchiveFormatError):
        decrypt(b"not zlib data", info)


def test_decrypt_keyed_and_plain():
    plain = b"0123456789abcdef"
    keyed = FileInfo.parse(_pack_entry(1, 2, 5, 0, 0), "a.dat").with_key(b"key")
    assert decrypt(decrypt_with_key(plain, b"key"), keyed) == plain
    unencrypted = FileInfo.parse(_pack_entry(1, 2, 0, 0, 0), "a.dat")
    assert decrypt(plain, unencrypted) == plain


def test_hex_dword():
    assert hex_dword(0xAB) == "000000AB"
    text = hex_dword(0xDEADBEEF)
    assert len(text) == 8
    assert text == text.upper()
    assert int(text, 16) == 0xDEADBEEF
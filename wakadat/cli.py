"""Command-line extraction of ACV1 ``.dat`` archives."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from wakadat.archive import (
    ArchiveFormatError,
    EncryptType,
    FileInfo,
    build_key_index,
    decrypt,
    hex_dword,
    read_file_infos,
)

_KEYED = (EncryptType.KEYED, EncryptType.KEYED_ALT)


@dataclass
class ExtractResult:
    """Outcome of extracting one archive."""

    total: int
    written: list[Path] = field(default_factory=list)

    @property
    def extracted(self) -> int:
        """Number of entries written out."""
        return len(self.written)


def load_keys(path: str | os.PathLike) -> list[bytes]:
    """Read one entry path per line; a missing file gives no keys."""
    try:
        data = Path(path).read_bytes()
    except OSError:
        return []
    lines = data.split(b"\n")
    if lines[-1] == b"":
        lines.pop()
    return [line.removesuffix(b"\r") for line in lines]


def output_name(info: FileInfo, key: bytes | None) -> str | None:
    """Relative output name of an entry, or None when it cannot be extracted."""
    if key is not None:
        name = os.fsdecode(key)
    else:
        name = (
            f"{info.dat_name}/{hex_dword(info.crc_low)}_"
            f"{hex_dword(info.crc_high)}_{hex_dword(info.encrypt_type)}"
        )
    kind = info.encrypt_type
    if kind == EncryptType.PLAIN:
        return name if key else name + ".avi"
    if kind in _KEYED:
        return name if key else None
    if kind == EncryptType.PACKED:
        return name if key else name + ".txt"
    return None


def _read_entry(fh: BinaryIO, offset: int, size: int) -> bytes:
    fh.seek(offset)
    data = fh.read(size)
    if len(data) != size:
        raise ArchiveFormatError("failed to read entry data")
    return data


def extract(
    dat_path: str | os.PathLike,
    keys: Iterable[bytes | str],
    out_dir: str | os.PathLike | None = None,
) -> ExtractResult:
    """Extract every readable entry of ``dat_path`` below ``out_dir``."""
    dat = os.fsdecode(dat_path).replace("\\", "/")
    target = Path(out_dir) if out_dir is not None else Path(dat).parent / "out"
    index = build_key_index(keys)
    infos = read_file_infos(dat)
    result = ExtractResult(total=len(infos))
    with open(dat, "rb") as fh:
        for info in infos:
            key = index.get(info.listkey)
            name = output_name(info, key)
            if name is None:
                continue
            if key and info.encrypt_type in _KEYED:
                info = info.with_key(key)
            stored = _read_entry(fh, info.offset, info.size)
            try:
                data = decrypt(stored, info)
            except ArchiveFormatError as exc:
                print(f"{name}: {exc}", file=sys.stderr)
                continue
            path = target / name.replace("\\", "/").lstrip("/")
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            result.written.append(path)
    return result


def main(argv: list[str] | None = None) -> int:
    """Run the extractor; returns the process exit status."""
    parser = argparse.ArgumentParser(
        prog="wakadat", description="Extract the files of an ACV1 .dat archive."
    )
    parser.add_argument("dat", nargs="?", help="path of the .dat archive")
    parser.add_argument(
        "--keys", default="keys.txt", help="file listing entry paths, one per line"
    )
    parser.add_argument(
        "--out", default=None, help="output directory (default: 'out' next to the archive)"
    )
    args = parser.parse_args(argv)

    keys = load_keys(args.keys)
    dat = args.dat
    if dat is None:
        try:
            dat = input("Path of the .dat file: ").strip()
        except EOFError:
            dat = ""

    try:
        result = extract(dat, keys, args.out)
    except (ArchiveFormatError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"Read {result.total} files")
    print(f"Extracted {result.extracted} files")
    return 0


if __name__ == "__main__":
    sys.exit(main())
# wakadat

Extracts files from ACV1 `.dat` archives. Each entry is decoded according to
its storage type. Type 6 entries are also decompressed with zlib.

## Installation

```
pip install .
```

## Usage

```
wakadat path/to/script.dat
```

Options:

- `--keys FILE`: the file that lists entry paths, one per line. The default is
  `keys.txt` in the current directory. If the file is missing, no keys are used.
- `--out DIR`: the output directory. The default is `out` next to the archive.

If you give no archive path, the command asks for one. When it finishes, it
prints how many entries the file table held and how many it wrote. It exits
with status 1 in two cases: the archive cannot be opened, or its header or file
table is invalid. If a single entry fails to decompress, the command reports it
on stderr, skips it and goes on.

### Keys and output names

Each line of the key file is hashed with the archive's CRC-64 variant. The
lookup key is derived from that hash and compared with the lookup key of each
entry. A matched entry is written under its path from the key file. For types 1
and 5, the key also unmasks the entry's offset and size and decrypts its data.

An unmatched entry is named `<archive name>/<crc_low>_<crc_high>_<type>`, each
part written as 8 upper-case hex digits:

- type 0 (stored plainly) gets the suffix `.avi`
- type 6 (dword XOR plus zlib, no key needed) gets the suffix `.txt`
- types 1 and 5 cannot be decoded without a key and are skipped
- entries of any other type are skipped

## Library use

```python
from wakadat.archive import read_file_infos, decrypt
from wakadat.cli import load_keys, extract

result = extract("data/script.dat", load_keys("keys.txt"), "data/out")
print(result.total, result.extracted)
for path in result.written:
    print(path)
```

The modules:

- `wakadat.crc64`: `crc64(data)` returns a `Crc64` tuple of `low` and `high`
  32-bit halves. Its `value` property gives the full 64-bit number.
- `wakadat.archive`:
  - `read_file_infos(path)` parses the file table into `FileInfo` records.
  - `FileInfo.parse(raw, dat_name)` decodes one 21-byte entry.
  - `FileInfo.with_key(key)` returns a copy unmasked with a key.
  - `FileInfo.kind` gives the `EncryptType`, or `None` for an unknown type.
  - `listkey_from_key` and `listkey_from_crc` compute lookup keys.
  - `build_key_index(keys)` maps lookup keys to paths.
  - `decrypt(data, info)` returns the decoded bytes of one entry.
  - `decrypt_with_key` and `decrypt_type6` are the per-type steps.
  - `hex_dword` formats a 32-bit value as 8 upper-case hex digits.
  - An unsupported or truncated archive, a bad entry, or failed decompression
    raises `ArchiveFormatError`, a subclass of `ValueError`.
- `wakadat.cli`: `load_keys`, `output_name`, `extract` (returns an
  `ExtractResult`) and `main`.

## Limitations

wakadat only reads archives. It cannot create or modify `.dat` files. It cannot
recover entry paths, so entries of types 1 and 5 can be extracted only when
their path is listed in the key file.

## Tests

```
pip install .[test]
pytest
```
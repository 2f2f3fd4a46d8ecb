"""Synthetic BSA archives for the test suite."""
from __future__ import annotations

import struct
import zlib

import pytest

from bsa_parser.bsa.hashing import file_hash, path_hash
from bsa_parser.config import (
    FLAG_COMPRESSED,
    FLAG_EMBED_NAMES,
    FLAG_FILE_NAMES,
    FLAG_FOLDER_NAMES,
    SIZE_COMPRESSION_TOGGLE,
)

DEFAULT_FLAGS = FLAG_FOLDER_NAMES | FLAG_FILE_NAMES


def build_bsa(folders: dict[str, dict[str, bytes]], flags: int = DEFAULT_FLAGS,
              version: int = 104, toggled: frozenset[str] = frozenset(),
              encoding: str = "cp1252") -> bytes:
    """Lay out a version 104 archive the way the game's packer does.

    Folders are sorted by hash, files by hash within each folder. Paths in
    ``toggled`` get the per-file compression toggle bit. Names are stored in
    ``encoding``.
    """
    def enc(s):
        return s.encode(encoding)

    folder_list = sorted(
        ((name, sorted(files.items(), key=lambda kv: file_hash(kv[0], encoding)))
         for name, files in folders.items()),
        key=lambda kv: path_hash(kv[0], encoding=encoding))
    n_folders = len(folder_list)
    n_files = sum(len(files) for _, files in folder_list)
    folder_names_len = sum(len(enc(name)) + 1 for name, _ in folder_list)
    file_names = [fname for _, files in folder_list for fname, _ in files]
    file_names_len = sum(len(enc(n)) + 1 for n in file_names)

    # Folder record blocks follow the folder record table
    pos = 36 + 16 * n_folders
    block_offsets = []
    for name, files in folder_list:
        block_offsets.append(pos)
        pos += 1 + len(enc(name)) + 1 + 16 * len(files)
    data_start = pos + (file_names_len if flags & FLAG_FILE_NAMES else 0)

    # File data
    data = bytearray()
    file_records = []
    for name, files in folder_list:
        records = []
        for fname, raw in files:
            path = f"{name}\\{fname}"
            toggle = path in toggled
            stored = b""
            if flags & FLAG_EMBED_NAMES:
                stored += bytes([len(enc(path))]) + enc(path)
            if bool(flags & FLAG_COMPRESSED) ^ toggle:
                stored += struct.pack("<I", len(raw)) + zlib.compress(raw)
            else:
                stored += raw
            size = len(stored) | (SIZE_COMPRESSION_TOGGLE if toggle else 0)
            records.append(struct.pack("<QII", file_hash(fname, encoding), size,
                                       data_start + len(data)))
            data += stored
        file_records.append(records)

    out = bytearray(struct.pack(
        "<4sIIIIIIII", b"BSA\x00", version, 36, flags, n_folders, n_files,
        folder_names_len, file_names_len, 0))
    for (name, files), block in zip(folder_list, block_offsets):
        out += struct.pack("<QII", path_hash(name, encoding=encoding), len(files), block + file_names_len)
    for (name, _), records in zip(folder_list, file_records):
        out += bytes([len(enc(name)) + 1]) + enc(name) + b"\x00"
        out += b"".join(records)
    if flags & FLAG_FILE_NAMES:
        out += b"".join(enc(n) + b"\x00" for n in file_names)
    out += data
    return bytes(out)


@pytest.fixture
def minimal_bsa() -> bytes:
    """One folder 'meshes' holding one file 'x.nif'."""
    return build_bsa({"meshes": {"x.nif": b"NIF DATA"}})


@pytest.fixture
def sample_folders() -> dict[str, dict[str, bytes]]:
    return {
        "meshes": {"x.nif": b"NIF DATA", "idle.kf": b"KF"},
        "textures\\armor": {"leather.dds": b"DDS " * 16, "x.nif": b"OTHER NIF"},
        "sound\\fx": {"boom.wav": b"RIFF....WAVE"},
    }


@pytest.fixture
def sample_bsa(sample_folders) -> bytes:
    return build_bsa(sample_folders)


@pytest.fixture
def bsa_file(tmp_path, sample_bsa):
    path = tmp_path / "Fallout - Test.bsa"
    path.write_bytes(sample_bsa)
    return path


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the settings file at a temporary directory."""
    config_path = tmp_path / "config" / "config.toml"
    monkeypatch.setattr("bsa_parser.settings.get_config_path", lambda: config_path)
    monkeypatch.setattr("bsa_parser.cli.get_config_path", lambda: config_path)
    return config_path
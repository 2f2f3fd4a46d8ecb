"""Header and record dataclasses for BSA (version 104) parsing."""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from bsa_parser.config import (
    FLAG_COMPRESSED,
    FLAG_EMBED_NAMES,
    FLAG_FILE_NAMES,
    FLAG_FOLDER_NAMES,
    PATH_SEP,
    SIZE_COMPRESSION_TOGGLE,
    SIZE_FLAGS_MASK,
)

# Struct formats (little-endian)
HEADER_FMT = struct.Struct("<4sIIIIIIII")  # magic(4) + version + folder_records_offset + archive_flags + folders + files + folder_names_len + file_names_len + file_flags
FOLDER_RECORD_FMT = struct.Struct("<QII")  # hash(8) + file_count(4) + files_offset(4)
FILE_RECORD_FMT = struct.Struct("<QII")    # hash(8) + size(4) + offset(4)


@dataclass(frozen=True, slots=True)
class Header:
    """The fixed 36 byte archive header."""
    file_id: bytes
    version: int
    folder_records_offset: int
    archive_flags: int
    folder_count: int
    file_count: int
    total_folder_name_length: int
    total_file_name_length: int
    file_flags: int

    @classmethod
    def unpack(cls, values: tuple) -> Header:
        return cls(*values)

    @property
    def has_folder_names(self) -> bool:
        return bool(self.archive_flags & FLAG_FOLDER_NAMES)

    @property
    def has_file_names(self) -> bool:
        """True if a flat file name list follows the file record blocks."""
        return bool(self.archive_flags & FLAG_FILE_NAMES)

    @property
    def is_compressed(self) -> bool:
        return bool(self.archive_flags & FLAG_COMPRESSED)

    @property
    def embeds_names(self) -> bool:
        return bool(self.archive_flags & FLAG_EMBED_NAMES)


@dataclass(slots=True)
class FolderRecord:
    name_hash: int
    file_count: int
    files_offset: int


@dataclass(slots=True)
class FileRecord:
    name_hash: int
    size: int
    offset: int


@dataclass(slots=True)
class Folder:
    """Folder summary kept in the archive's folder map."""
    count: int
    offset: int


@dataclass(slots=True)
class File:
    """File location kept in the archive's file map.

    ``size`` is the raw on-disk field, flag bits included.
    """
    size: int
    offset: int

    @property
    def compression_toggle(self) -> bool:
        return bool(self.size & SIZE_COMPRESSION_TOGGLE)

    @property
    def data_size(self) -> int:
        return self.size & ~SIZE_FLAGS_MASK


@dataclass(slots=True)
class Entry:
    """One file record in on-disk order, with its folder and names."""
    folder_hash: int
    file_hash: int
    file: File
    folder_name: str
    file_name: Optional[str] = None

    @property
    def path(self) -> str:
        """``folder\\file``, using the hex hash when the file name is unknown."""
        name = self.file_name if self.file_name is not None else f"{self.file_hash:016x}"
        if not self.folder_name:
            return name
        return f"{self.folder_name}{PATH_SEP}{name}"

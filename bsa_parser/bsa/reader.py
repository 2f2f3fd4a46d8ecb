"""BSA (version 104) archive reader for Fallout 3 / New Vegas.

For the file format see:
https://en.uesp.net/wiki/Oblivion_Mod:BSA_File_Format
"""
from __future__ import annotations

import logging
import re
import struct
import zlib
from pathlib import Path, PureWindowsPath
from typing import BinaryIO, Iterator, Optional, Union

from bsa_parser.bsa.cursor import BinaryCursor
from bsa_parser.bsa.hashing import file_hash, normalize_path, path_hash
from bsa_parser.bsa.hashmap import HashIndexedMap
from bsa_parser.bsa.records import (
    FILE_RECORD_FMT,
    FOLDER_RECORD_FMT,
    HEADER_FMT,
    Entry,
    File,
    Folder,
    FolderRecord,
    Header,
)
from bsa_parser.config import BSA_MAGIC, BSA_VERSION, DEFAULT_ENCODING, HEADER_SIZE, PATH_SEP
from bsa_parser.exceptions import (
    ArchiveDecodingError,
    ArchiveDecompressionError,
    ArchiveFormatError,
    ArchiveIOError,
    UnsupportedVersionError,
)
from bsa_parser.settings import Settings

logger = logging.getLogger(__name__)

_UINT32 = struct.Struct("<I")
_PATH_SPLIT_RE = re.compile(r"[\\/]")


class BSAArchive:
    """A fully decoded archive index plus the stream it was read from.

    Folders and files are keyed by path hash. ``entries`` keeps every file
    record in on-disk order together with its folder, so files sharing a
    name in different folders stay reachable.
    """

    def __init__(self, stream: BinaryIO, name: str, header: Header,
                 folders: HashIndexedMap[Folder], files: HashIndexedMap[File],
                 entries: list[Entry], folder_names: dict[int, str],
                 file_names: list[str], encoding: str = DEFAULT_ENCODING):
        self.name = name
        self.encoding = encoding
        self.header = header
        self.folders = folders
        self.files = files
        self.entries = entries
        self.folder_names = folder_names
        self.file_names = file_names
        self._stream = stream
        self._cursor = BinaryCursor(stream, name)
        self._index = {(e.folder_hash, e.file_hash): e for e in entries}

    def __enter__(self) -> BSAArchive:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._stream.close()

    def __repr__(self) -> str:
        return (f"<BSAArchive {self.name!r}: {len(self.folders)} folders, "
                f"{len(self.entries)} files>")

    def find_folder(self, path: str) -> Optional[Folder]:
        """Look up a folder by path (case and separators normalized)."""
        return self.folders.lookup_by_name(normalize_path(path), self.encoding)

    def find_entry(self, path: str) -> Optional[Entry]:
        """Look up a file by its full ``folder\\name.ext`` path."""
        folder, _, name = normalize_path(path).rpartition(PATH_SEP)
        return self._index.get((path_hash(folder, encoding=self.encoding),
                                file_hash(name, self.encoding)))

    def find_file(self, path: str) -> Optional[File]:
        entry = self.find_entry(path)
        return entry.file if entry is not None else None

    def iter_paths(self) -> Iterator[str]:
        for entry in self.entries:
            yield entry.path

    def read_file(self, target: Union[Entry, File]) -> bytes:
        """Read (and decompress if needed) a single file's contents."""
        file = target.file if isinstance(target, Entry) else target
        cursor = self._cursor
        data_size = file.data_size
        cursor.seek(file.offset)
        if self.header.embeds_names:
            name_len = cursor.read_byte()
            cursor.seek(name_len, 1)  # discard embedded path
            data_size -= name_len + 1
        if self.header.is_compressed ^ file.compression_toggle:
            uncompressed_size = cursor.read_struct(_UINT32)[0]
            data_size -= 4
            compressed = cursor.read_exact(data_size)
            try:
                data = zlib.decompress(compressed)
            except zlib.error as e:
                raise ArchiveDecompressionError(self.name, repr(e))
            if len(data) != uncompressed_size:
                raise ArchiveDecompressionError(
                    self.name, f"decompressed size incorrect - expected "
                               f"{uncompressed_size}, but got {len(data)}")
            return data
        return cursor.read_exact(data_size)

    def extract_to(self, dest: Path, entries: Optional[list[Entry]] = None) -> list[Path]:
        """Write entries (default: all) below dest, keeping folder structure."""
        written = []
        root = dest.resolve()
        for entry in self.entries if entries is None else entries:
            out_path = self._output_path(root, entry)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_bytes(self.read_file(entry))
            written.append(out_path)
        return written

    def _output_path(self, root: Path, entry: Entry) -> Path:
        """Map an entry's path below root, refusing anything that escapes it."""
        parts = [p for p in _PATH_SPLIT_RE.split(entry.path)
                 if p not in ("", ".", "..") and not PureWindowsPath(p).drive]
        out_path = root.joinpath(*parts)
        if not parts or not out_path.resolve().is_relative_to(root):
            raise ArchiveFormatError(
                self.name, f"Refusing to extract {entry.path!r} outside {root}")
        return out_path


class BSADecoder:
    """Sequential decoder for version 104 archives.

    Runs header -> folder records -> folder names with their file record
    blocks -> optional file name list, and stops at the first error. No
    state escapes a failed decode.
    """

    def __init__(self, cursor: BinaryCursor, encoding: str = DEFAULT_ENCODING,
                 verify_file_hashes: bool = True):
        self.cursor = cursor
        self.encoding = encoding
        self.verify_file_hashes = verify_file_hashes

    def decode(self) -> BSAArchive:
        header = self._read_header()
        folders: HashIndexedMap[Folder] = HashIndexedMap()
        files: HashIndexedMap[File] = HashIndexedMap()
        records = self._read_folder_records(header, folders)
        entries, folder_names = self._read_folder_blocks(header, records, folders, files)
        file_names = self._read_file_names(header, entries)
        logger.debug("%s: decoded %d folders, %d files", self.cursor.name,
                     len(folders), len(entries))
        return BSAArchive(self.cursor.stream, self.cursor.name, header, folders,
                          files, entries, folder_names, file_names, self.encoding)

    def _decode_name(self, raw: bytes) -> str:
        try:
            return raw.decode(self.encoding)
        except UnicodeDecodeError:
            raise ArchiveDecodingError(self.cursor.name, raw)

    def _read_header(self) -> Header:
        name = self.cursor.name
        header = Header.unpack(self.cursor.read_struct(HEADER_FMT))
        if header.file_id != BSA_MAGIC:
            raise ArchiveFormatError(
                name, f"Magic wrong: got {header.file_id!r}, expected {BSA_MAGIC!r}")
        if header.version != BSA_VERSION:
            raise UnsupportedVersionError(name, header.version, BSA_VERSION)
        if header.folder_records_offset != HEADER_SIZE:
            raise ArchiveFormatError(
                name, f"Header size wrong: {header.folder_records_offset}. "
                      f"Should be {HEADER_SIZE}")
        logger.debug("%s: %r", name, header)
        return header

    def _read_folder_records(self, header: Header,
                             folders: HashIndexedMap[Folder]) -> list[FolderRecord]:
        records = []
        for _ in range(header.folder_count):
            record = FolderRecord(*self.cursor.read_struct(FOLDER_RECORD_FMT))
            folders.insert(record.name_hash, Folder(record.file_count, record.files_offset))
            records.append(record)
            logger.debug("%r 0x%016x", record, record.name_hash)
        return records

    def _read_folder_blocks(self, header: Header, records: list[FolderRecord],
                            folders: HashIndexedMap[Folder],
                            files: HashIndexedMap[File]) -> tuple[list[Entry], dict[int, str]]:
        cursor = self.cursor
        entries: list[Entry] = []
        folder_names: dict[int, str] = {}
        names_length = 0
        for i, record in enumerate(records):
            block_start = cursor.tell()
            raw = cursor.read_bstring()
            names_length += len(raw) + 1
            folder_name = self._decode_name(raw)
            name_hash = path_hash(raw)
            folder = folders.get(name_hash)
            if folder is None or name_hash != record.name_hash:
                raise ArchiveFormatError(
                    cursor.name,
                    f"Folder name {folder_name!r} (0x{name_hash:016x}) does not "
                    f"match folder record {i} (0x{record.name_hash:016x})")
            declared = record.files_offset - header.total_file_name_length
            if declared != block_start:
                logger.warning("%s: folder %r declares its records at %d, found at %d",
                               cursor.name, folder_name, declared, block_start)
            folder_names[name_hash] = folder_name
            logger.debug("%r 0x%016x", folder_name, name_hash)
            with cursor.scope():
                for _ in range(folder.count):
                    file_name_hash, size, offset = cursor.read_struct(FILE_RECORD_FMT)
                    file = File(size, offset)
                    files.insert(file_name_hash, file)
                    entries.append(Entry(name_hash, file_name_hash, file, folder_name))
                    logger.debug("  0x%016x %r", file_name_hash, file)
        if names_length != header.total_folder_name_length:
            logger.warning("%s reports wrong folder names length %d - actual: %d",
                           cursor.name, header.total_folder_name_length, names_length)
        if len(entries) != header.file_count:
            raise ArchiveFormatError(
                cursor.name, f"Folders declare {len(entries)} files, header says "
                             f"{header.file_count}")
        return entries, folder_names

    def _read_file_names(self, header: Header, entries: list[Entry]) -> list[str]:
        if not header.has_file_names:
            return []
        cursor = self.cursor
        file_names = []
        names_length = 0
        for entry in entries:
            raw = cursor.read_zstring()
            names_length += len(raw) + 1
            entry.file_name = self._decode_name(raw)
            file_names.append(entry.file_name)
            if self.verify_file_hashes and file_hash(raw) != entry.file_hash:
                logger.warning("%s: file name %r does not match its record hash 0x%016x",
                               cursor.name, entry.path, entry.file_hash)
        if names_length != header.total_file_name_length:
            logger.warning("%s reports wrong file names length %d - actual: %d",
                           cursor.name, header.total_file_name_length, names_length)
        return file_names


def decode_archive(stream: BinaryIO, name: str | None = None,
                   settings: Settings | None = None) -> BSAArchive:
    """Decode an archive from any seekable binary stream."""
    settings = settings or Settings()
    cursor = BinaryCursor(stream, name, strict=settings.strict_terminators)
    return BSADecoder(cursor, settings.encoding, settings.verify_file_hashes).decode()


def open_archive(path: Union[str, Path], settings: Settings | None = None) -> BSAArchive:
    """Open and decode an archive file. The file is closed if decoding fails."""
    path = Path(path)
    try:
        stream = open(path, "rb")
    except OSError as e:
        raise ArchiveIOError(str(path), f"cannot open: {e}") from e
    try:
        return decode_archive(stream, path.name, settings)
    except BaseException:
        stream.close()
        raise


def main():
    """Quick test: dump the header, folders and files of an archive."""
    import sys
    if len(sys.argv) < 2:
        print("Usage: python -m bsa_parser.bsa.reader <path/to/archive.bsa>")
        sys.exit(1)

    with open_archive(sys.argv[1]) as archive:
        print(archive.header)
        for name_hash, folder in archive.folders.items():
            name = archive.folder_names.get(name_hash, "")
            print(f"0x{name_hash:016x} {name!r} {folder}")
        for entry in archive.entries:
            print(f"  0x{entry.file_hash:016x} {entry.path} "
                  f"({entry.file.data_size:,} bytes @ {entry.file.offset})")


if __name__ == "__main__":
    main()

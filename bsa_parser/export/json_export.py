"""Export an archive index as JSON."""
from __future__ import annotations

import json

from bsa_parser.bsa.reader import BSAArchive


def export_json(archive: BSAArchive) -> str:
    """Export header, folders and files as JSON string."""
    header = archive.header
    compressed_default = header.is_compressed

    folders = []
    for name_hash, folder in archive.folders.items():
        folders.append({
            "hash": f"0x{name_hash:016X}",
            "name": archive.folder_names.get(name_hash),
            "count": folder.count,
            "offset": folder.offset,
        })

    files = []
    for entry in archive.entries:
        files.append({
            "path": entry.path,
            "folder_hash": f"0x{entry.folder_hash:016X}",
            "file_hash": f"0x{entry.file_hash:016X}",
            "size": entry.file.data_size,
            "offset": entry.file.offset,
            "compressed": compressed_default ^ entry.file.compression_toggle,
        })

    data = {
        "archive": archive.name,
        "version": header.version,
        "archive_flags": f"0x{header.archive_flags:08X}",
        "file_flags": f"0x{header.file_flags:08X}",
        "folders": folders,
        "files": files,
    }
    return json.dumps(data, indent=2)

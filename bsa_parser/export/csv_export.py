"""Export an archive index as CSV."""
from __future__ import annotations

import csv
import io

from bsa_parser.bsa.reader import BSAArchive


def export_csv(archive: BSAArchive) -> str:
    """Export file entries as CSV string."""
    output = io.StringIO()
    writer = csv.writer(output)

    # Header
    writer.writerow([
        "path", "folder_hash", "file_hash", "size", "offset", "compressed",
    ])

    compressed_default = archive.header.is_compressed
    for entry in archive.entries:
        writer.writerow([
            entry.path,
            f"0x{entry.folder_hash:016X}",
            f"0x{entry.file_hash:016X}",
            entry.file.data_size,
            entry.file.offset,
            int(compressed_default ^ entry.file.compression_toggle),
        ])

    return output.getvalue()

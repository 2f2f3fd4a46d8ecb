"""Default paths and constants for BSA (version 104) archives."""
from pathlib import Path


def derive_output_dir(archive: Path) -> Path:
    """Default extraction directory: a sibling named after the archive."""
    return archive.parent / archive.stem


def find_archives(data_dir: Path) -> list[Path]:
    """Return all BSA archives in a game Data directory, sorted by name."""
    return sorted(p for p in data_dir.glob("*.bsa") if p.is_file())


# BSA format constants
BSA_MAGIC = b"BSA\x00"
BSA_VERSION = 104           # Fallout 3 / New Vegas
HEADER_SIZE = 36            # Header is 9 fields of 4 bytes

# Archive flags
FLAG_FOLDER_NAMES = 0x00000001
FLAG_FILE_NAMES = 0x00000002      # flat file name list follows the file records
FLAG_COMPRESSED = 0x00000004      # files are compressed unless toggled
FLAG_EMBED_NAMES = 0x00000100     # file data is prefixed with its full path

# File record size field
SIZE_COMPRESSION_TOGGLE = 0x40000000
SIZE_FLAGS_MASK = 0xC0000000

# Names are stored in the Windows codepage
DEFAULT_ENCODING = "cp1252"
PATH_SEP = "\\"

"""Path hashing used by BSA archives to index folders and files.

The 64-bit hash is not a general purpose hash: folder and file records on
disk store it in place of names, so it has to be reproduced bit for bit.

See: https://en.uesp.net/wiki/Oblivion_Mod:Hash_Calculation
"""
from __future__ import annotations

from typing import Union

from bsa_parser.config import DEFAULT_ENCODING, PATH_SEP
from bsa_parser.exceptions import ArchiveDecodingError

_UINT32_MASK = 0xFFFFFFFF
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF
_HASH_MULTIPLIER = 0x1003F

# Extensions that get an extra scramble of the low word
_EXT_INDEX = {b".nif": 1, b".kf": 2, b".dds": 3, b".wav": 4}

StrOrBytes = Union[str, bytes]


def _as_bytes(s: StrOrBytes, encoding: str = DEFAULT_ENCODING) -> bytes:
    if isinstance(s, str):
        try:
            return s.encode(encoding)
        except UnicodeEncodeError:
            raise ArchiveDecodingError(encoding, s)
    return bytes(s)


def rolling_hash(s: StrOrBytes, encoding: str = DEFAULT_ENCODING) -> int:
    """32-bit multiplicative hash: acc = acc * 0x1003F + byte, wrapping."""
    acc = 0
    for b in _as_bytes(s, encoding):
        acc = (acc * _HASH_MULTIPLIER + b) & _UINT32_MASK
    return acc


def path_hash(name: StrOrBytes, ext: StrOrBytes = b"",
              encoding: str = DEFAULT_ENCODING) -> int:
    """Calculate the 64-bit archive hash for a name and optional extension.

    The low word is built from the last, second-to-last and first characters
    of the name plus its length. The high word accumulates the rolling hash
    of the name's middle and of the extension. For the four extensions the
    engine treats specially, the low word is then scrambled with the
    extension's index. No case folding is done here; archives store lower
    case names. Text is encoded with ``encoding`` first and raises
    ArchiveDecodingError if it cannot be.
    """
    name = _as_bytes(name, encoding)
    ext = _as_bytes(ext, encoding)
    result = 0
    if name:
        seed = bytes((
            name[-1],
            name[-2] if len(name) > 1 else 0,
            len(name) & 0xFF,
            name[0],
        ))
        result = int.from_bytes(seed, "little")
        if len(name) > 3:
            result += rolling_hash(name[1:-2]) << 32
    if ext:
        result = (result + (rolling_hash(ext) << 32)) & _UINT64_MASK
        i = _EXT_INDEX.get(ext, 0)
        if i:
            x0 = (result >> 24) & 0xFF
            x1 = result & 0xFF
            x2 = (result >> 8) & 0xFF
            a = (((i & 0xFC) << 5) + x0) & 0xFF
            b = (((i & 0xFE) << 6) + x1) & 0xFF
            c = ((i << 7) + x2) & 0xFF
            # byte 2 holds the name length and is left alone
            result &= ~0xFF00FFFF & _UINT64_MASK
            result += (a << 24) | b | (c << 8)
    return result & _UINT64_MASK


def split_name(filename: StrOrBytes, encoding: str = DEFAULT_ENCODING) -> tuple[bytes, bytes]:
    """Split a file name into (stem, extension) at its last dot."""
    filename = _as_bytes(filename, encoding)
    dot = filename.rfind(b".")
    if dot < 0:
        return filename, b""
    return filename[:dot], filename[dot:]


def file_hash(filename: StrOrBytes, encoding: str = DEFAULT_ENCODING) -> int:
    """Hash a bare file name (no folder part) the way file records do."""
    return path_hash(*split_name(filename, encoding))


def normalize_path(path: str) -> str:
    """Lower case, backslash separated, no leading/trailing separators."""
    return path.replace("/", PATH_SEP).strip(PATH_SEP).lower()

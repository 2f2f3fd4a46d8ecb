"""Exceptions raised while decoding BSA archives."""
from __future__ import annotations


class ArchiveError(Exception):
    """Base class for all archive errors. Carries the archive's name."""

    def __init__(self, in_name: str, message: str):
        super().__init__(f"{in_name}: {message}")
        self.in_name = in_name
        self.message = message


class ArchiveIOError(ArchiveError):
    """Underlying read/seek failure, including truncated data."""


class ArchiveFormatError(ArchiveError):
    """The archive's structure is corrupt or misaligned."""


class UnsupportedVersionError(ArchiveError):
    def __init__(self, in_name: str, version: int, expected: int):
        super().__init__(
            in_name, f"Unsupported BSA version {version} (only {expected} supported)")
        self.version = version


class ArchiveDecodingError(ArchiveError):
    """Bytes that must be hashed or displayed are not valid text."""

    def __init__(self, in_name: str, raw: bytes | str):
        super().__init__(in_name, f"Undecodable string {raw!r}")
        self.raw = raw


class ArchiveDecompressionError(ArchiveError):
    def __init__(self, in_name: str, message: str):
        super().__init__(in_name, f"zlib error while decompressing record: {message}")

"""Structured reads over a seekable binary stream."""
from __future__ import annotations

import logging
import struct
from contextlib import contextmanager
from typing import BinaryIO, Iterator

from bsa_parser.exceptions import ArchiveFormatError, ArchiveIOError

logger = logging.getLogger(__name__)

_BYTE = struct.Struct("<B")


class BinaryCursor:
    """Reader for fixed records and strings, tracking nesting depth.

    All short reads and OS errors surface as ArchiveIOError. With
    ``strict`` set, a length-prefixed string whose terminator is not zero
    is rejected instead of being logged.
    """

    def __init__(self, stream: BinaryIO, name: str | None = None, strict: bool = False):
        self.stream = stream
        self.name = name or getattr(stream, "name", None) or "<stream>"
        self.strict = strict
        self.depth = 0

    def tell(self) -> int:
        try:
            return self.stream.tell()
        except OSError as e:
            raise ArchiveIOError(self.name, f"tell failed: {e}") from e

    def seek(self, offset: int, whence: int = 0) -> int:
        try:
            return self.stream.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise ArchiveIOError(self.name, f"seek to {offset} failed: {e}") from e

    def read_exact(self, size: int) -> bytes:
        pos = self.tell()
        try:
            data = self.stream.read(size)
        except OSError as e:
            raise ArchiveIOError(self.name, f"read failed at offset {pos}: {e}") from e
        if len(data) != size:
            raise ArchiveIOError(
                self.name,
                f"Unexpected end of data at offset {pos}: wanted {size} bytes, got {len(data)}")
        return data

    def read_struct(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.read_exact(fmt.size))

    def read_byte(self) -> int:
        return self.read_struct(_BYTE)[0]

    def read_bstring(self) -> bytes:
        """Read a length-prefixed string whose last byte is a terminator."""
        pos = self.tell()
        length = self.read_byte()
        if length == 0:
            raise ArchiveFormatError(
                self.name, f"Zero-length string prefix at offset {pos}")
        data = self.read_exact(length)
        if data[-1] != 0:
            msg = f"String at offset {pos} ends in 0x{data[-1]:02X}, not a terminator"
            if self.strict:
                raise ArchiveFormatError(self.name, msg)
            logger.warning("%s: %s", self.name, msg)
        return data[:-1]

    def read_zstring(self) -> bytes:
        """Read up to and including a zero byte; return what precedes it."""
        buf = bytearray()
        while True:
            b = self.read_byte()
            if b == 0:
                return bytes(buf)
            buf.append(b)

    @contextmanager
    def scope(self) -> Iterator[int]:
        """Group a nested region of reads. Yields the region's start offset."""
        start = self.tell()
        self.depth += 1
        try:
            yield start
        finally:
            self.depth -= 1
        logger.debug("%s%d bytes read at offset %d", "  " * self.depth,
                     self.tell() - start, start)

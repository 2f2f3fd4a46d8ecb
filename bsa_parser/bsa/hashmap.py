"""Mapping keyed directly by 64-bit archive path hashes."""
from __future__ import annotations

from typing import Dict, Optional, TypeVar

from bsa_parser.bsa.hashing import path_hash
from bsa_parser.config import DEFAULT_ENCODING

V = TypeVar("V")


class HashIndexedMap(Dict[int, V]):
    """Plain dict keyed by the raw u64 hash of the original path.

    Archive records carry the hash already, so they are inserted as is.
    Collisions overwrite the earlier entry, as the archive itself offers
    no way to tell them apart.
    """

    def insert(self, name_hash: int, value: V) -> None:
        self[name_hash] = value

    def lookup_by_name(self, key: str, encoding: str = DEFAULT_ENCODING) -> Optional[V]:
        """Look up by an extensionless name (i.e. a folder path)."""
        return self.get(path_hash(key, "", encoding))

"""Snapshot compression.

Compressor            -- ABC for the byte-level collaborator.
GzipCompressor        -- gzip implementation (stdlib).
compress_snapshot     -- canonical JSON -> bytes via a compressor.
decompress_snapshot   -- bytes -> object; anything else passes through.
"""

from __future__ import annotations

import gzip
import json
from abc import ABC, abstractmethod
from typing import Any

from changeaudit.tracking.values import canonical_json


class Compressor(ABC):
    """Byte-to-byte compression collaborator."""

    @abstractmethod
    def compress(self, data: bytes) -> bytes:
        """Return the compressed form of *data*."""

    @abstractmethod
    def decompress(self, data: bytes) -> bytes:
        """Invert ``compress``."""


class GzipCompressor(Compressor):
    def __init__(self, level: int = 9) -> None:
        if not 0 <= level <= 9:
            raise ValueError(f"gzip level must be between 0 and 9, got {level}")
        self._level = level

    def compress(self, data: bytes) -> bytes:
        # mtime pinned so identical snapshots compress to identical bytes.
        return gzip.compress(data, compresslevel=self._level, mtime=0)

    def decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)


def compress_snapshot(snapshot: Any, compressor: Compressor) -> bytes | None:
    """Compress the canonical JSON of *snapshot*; ``None`` stays ``None``."""
    if snapshot is None:
        return None
    return compressor.compress(canonical_json(snapshot).encode("utf-8"))


def decompress_snapshot(data: Any, compressor: Compressor) -> Any:
    """Decode a compressed snapshot.  ``None`` stays ``None``; non-bytes pass through."""
    if data is None:
        return None
    if not isinstance(data, (bytes, bytearray, memoryview)):
        return data
    return json.loads(compressor.decompress(bytes(data)).decode("utf-8"))

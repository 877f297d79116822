"""Audit entry construction.

Submodules:
    builder      -- build_entry, snapshot masking, mask-rule collection.
    compression  -- Compressor collaborator and snapshot (de)compression.
"""

from changeaudit.entries.builder import build_entry, collect_mask_rules, mask_snapshot
from changeaudit.entries.compression import (
    Compressor,
    GzipCompressor,
    compress_snapshot,
    decompress_snapshot,
)

__all__ = [
    "Compressor",
    "GzipCompressor",
    "build_entry",
    "collect_mask_rules",
    "compress_snapshot",
    "decompress_snapshot",
    "mask_snapshot",
]

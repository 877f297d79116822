"""Persistence sink contract for audit entries.

AuditSink        -- ABC every storage backend must implement.
MemoryAuditSink  -- In-process list-backed sink (tests, CLI, embedding).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any

from changeaudit.entries.compression import Compressor, decompress_snapshot
from changeaudit.models.changes import AuditEntry
from changeaudit.tracking.paths import MISSING


class AuditSink(ABC):
    """Abstract base class for audit entry storage.

    ``write`` may raise; the auditor catches, logs and counts the failure so
    the audited operation is never aborted by its audit trail.
    """

    @abstractmethod
    def write(self, entry: AuditEntry) -> None:
        """Persist *entry*."""

    @abstractmethod
    def find_by_subject(self, subject: str, subject_id: Any) -> list[AuditEntry]:
        """Return the entries recorded for one document, oldest first."""


class MemoryAuditSink(AuditSink):
    """Keeps entries in insertion order.

    When a compressor is given, ``find_by_subject`` hands back copies whose
    snapshots are decompressed.
    """

    def __init__(self, compressor: Compressor | None = None) -> None:
        self._entries: list[AuditEntry] = []
        self._compressor = compressor

    @property
    def entries(self) -> list[AuditEntry]:
        return list(self._entries)

    def write(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def find_by_subject(self, subject: str, subject_id: Any) -> list[AuditEntry]:
        found = [e for e in self._entries if e.subject == subject and e.subject_id == subject_id]
        if self._compressor is None:
            return found
        return [self._readable(entry) for entry in found]

    def _readable(self, entry: AuditEntry) -> AuditEntry:
        assert self._compressor is not None
        if not entry.has_snapshots:
            return entry
        return replace(
            entry,
            before_snapshot=_decompressed(entry.before_snapshot, self._compressor),
            after_snapshot=_decompressed(entry.after_snapshot, self._compressor),
        )


def _decompressed(snapshot: Any, compressor: Compressor) -> Any:
    if snapshot is MISSING:
        return MISSING
    return decompress_snapshot(snapshot, compressor)

"""changeaudit: field-level change detection and audit entries for structured records.

Public API:
    diff / get_tracked_changes  -- change records between two snapshots
    simulate / apply_patch      -- predict the result of a partial update
    build_entry                 -- wrap change records into an AuditEntry
    extract_context             -- resolve context paths against snapshots
    parse_field_specs           -- build FieldSpec trees from plain mappings
    validate_field_specs        -- setup-time configuration checks
    ChangeAuditor               -- per-subject orchestration onto an AuditSink
"""

__version__ = "0.1.0"

from changeaudit.auditor import AuditorOptions, ChangeAuditor, SoftDeleteRule
from changeaudit.entries import GzipCompressor, build_entry
from changeaudit.models import (
    ArrayKind,
    AuditEntry,
    ChangeKind,
    ChangeRecord,
    ContextRule,
    EntryKind,
    FieldSpec,
)
from changeaudit.sinks import AuditSink, MemoryAuditSink
from changeaudit.tracking.context import extract_context
from changeaudit.tracking.engine import diff, get_tracked_changes
from changeaudit.tracking.patch import apply_patch, simulate
from changeaudit.tracking.paths import MISSING
from changeaudit.tracking.validation import ConfigurationError, parse_field_specs, validate_field_specs

__all__ = [
    "MISSING",
    "ArrayKind",
    "AuditEntry",
    "AuditSink",
    "AuditorOptions",
    "ChangeAuditor",
    "ChangeKind",
    "ChangeRecord",
    "ConfigurationError",
    "ContextRule",
    "EntryKind",
    "FieldSpec",
    "GzipCompressor",
    "MemoryAuditSink",
    "SoftDeleteRule",
    "__version__",
    "apply_patch",
    "build_entry",
    "diff",
    "extract_context",
    "get_tracked_changes",
    "parse_field_specs",
    "simulate",
    "validate_field_specs",
]

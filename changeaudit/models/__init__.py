"""Core data structures for changeaudit."""

from changeaudit.models.changes import AuditEntry, ChangeKind, ChangeRecord, EntryKind
from changeaudit.models.config import ChangeAuditConfig
from changeaudit.models.fields import ArrayKind, ContextRule, FieldSpec, PatchOperator

__all__ = [
    "ArrayKind",
    "AuditEntry",
    "ChangeAuditConfig",
    "ChangeKind",
    "ChangeRecord",
    "ContextRule",
    "EntryKind",
    "FieldSpec",
    "PatchOperator",
]

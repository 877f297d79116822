"""Change records and audit entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from changeaudit.tracking.paths import MISSING


class ChangeKind(StrEnum):
    """Field-level change type."""

    ADD = "add"
    EDIT = "edit"
    REMOVE = "remove"


class EntryKind(StrEnum):
    """Document-level operation an audit entry describes."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeRecord:
    """A single detected field change.

    ``from_value`` / ``to_value`` are ``None`` when the value did not exist on
    that side; an existing empty value is never reported as ``None``.
    Several records may share a ``field_name`` when a keyed-array path
    repeats once per element.
    """

    field_name: str
    kind: ChangeKind
    from_value: str | None = None
    to_value: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "field_name": self.field_name,
            "from_value": self.from_value,
            "to_value": self.to_value,
            "change_type": self.kind.value,
        }
        if self.context is not None:
            data["context"] = self.context
        return data


@dataclass
class AuditEntry:
    """The persistable record of one create/update/delete on a subject.

    Snapshots stay ``MISSING`` unless whole-document capture was requested;
    ``to_dict()`` leaves them out entirely in that case.
    """

    subject: str
    subject_id: Any
    kind: EntryKind
    changes: list[ChangeRecord] = field(default_factory=list)
    actor: Any = None
    context: dict[str, Any] | None = None
    before_snapshot: Any = MISSING
    after_snapshot: Any = MISSING
    deleted: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def has_snapshots(self) -> bool:
        return self.before_snapshot is not MISSING or self.after_snapshot is not MISSING

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "subject": self.subject,
            "subject_id": self.subject_id,
            "change_type": self.kind.value,
            "changes": [change.to_dict() for change in self.changes],
            "actor": self.actor,
            "is_deleted": self.deleted,
            "created_at": self.created_at,
        }
        if self.context is not None:
            data["context"] = self.context
        if self.before_snapshot is not MISSING:
            data["before_snapshot"] = self.before_snapshot
        if self.after_snapshot is not MISSING:
            data["after_snapshot"] = self.after_snapshot
        return data

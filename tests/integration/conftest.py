"""Shared fixtures for changeaudit integration tests.

Provides pre-configured auditors wired to an in-memory sink and a recording
logger so tests can exercise the full create / update / patch / delete
pipeline without a database.
"""

from __future__ import annotations

from typing import Any

import pytest

from changeaudit.auditor import AuditorOptions, ChangeAuditor, SoftDeleteRule
from changeaudit.models.changes import AuditEntry
from changeaudit.models.fields import ArrayKind, ContextRule, FieldSpec
from changeaudit.sinks import AuditSink, MemoryAuditSink

# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------


class RecordingLogger:
    """AuditLogger that keeps what it was told."""

    def __init__(self) -> None:
        self.errors: list[tuple[Any, str]] = []
        self.warnings: list[str] = []

    def error(self, err: Any, message: str = "") -> None:
        self.errors.append((err, message))

    def warn(self, message: str) -> None:
        self.warnings.append(message)


class FailingSink(AuditSink):
    """Sink whose writes always fail."""

    def write(self, entry: AuditEntry) -> None:
        raise ConnectionError("audit store unavailable")

    def find_by_subject(self, subject: str, subject_id: Any) -> list[AuditEntry]:
        return []


# ---------------------------------------------------------------------------
# Document factory helpers
# ---------------------------------------------------------------------------


def make_order(**kwargs: Any) -> dict[str, Any]:
    """Create an order document with sensible defaults for testing."""
    defaults: dict[str, Any] = {
        "_id": "order-1",
        "order_no": "SO-1001",
        "status": "pending",
        "owner": {"name": "ada", "email": "ada@example.com"},
        "tags": ["new"],
        "items": [{"sku": "A", "qty": 1, "price": 10}],
        "card": "4111111111111111",
        "created_by": "ada",
    }
    defaults.update(kwargs)
    return defaults


def order_fields() -> list[FieldSpec]:
    """Tracked fields used across the order tests."""
    return [
        FieldSpec(path="status", context_rule=["order_no"]),
        FieldSpec(path="owner.email"),
        FieldSpec(path="card", mask_rule=lambda v: "****" + str(v)[-4:]),
        FieldSpec(path="tags", array_kind=ArrayKind.PRIMITIVE_LIST),
        FieldSpec(
            path="items",
            array_kind=ArrayKind.KEYED_OBJECT_LIST,
            array_key="sku",
            value_field="sku",
            context_rule=ContextRule(item=("sku",)),
            children=(FieldSpec(path="qty"), FieldSpec(path="price", mask_rule="#")),
        ),
    ]


def make_options(**kwargs: Any) -> AuditorOptions:
    """Create AuditorOptions for the ``orders`` subject."""
    defaults: dict[str, Any] = {
        "subject": "orders",
        "fields": order_fields(),
        "context_paths": ["order_no"],
        "soft_delete": SoftDeleteRule(field="deleted", value=True),
    }
    defaults.update(kwargs)
    return AuditorOptions(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def audit_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def auditor(sink: MemoryAuditSink, audit_logger: RecordingLogger) -> ChangeAuditor:
    return ChangeAuditor(make_options(logger=audit_logger), sink)

"""Auditing orchestration.

ChangeAuditor ties the core together for one audited subject (a collection
or model): it classifies the operation (create / update / soft delete /
delete), resolves the acting user, diffs or simulates, builds the entry and
hands it to an AuditSink.

* Configuration problems raise ``ConfigurationError`` at construction.
* Sink failures never propagate: they are reported through the configured
  ``AuditLogger`` and counted, and the ``record_*`` call returns ``None``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from changeaudit.entries.builder import build_entry, collect_mask_rules
from changeaudit.entries.compression import Compressor
from changeaudit.models.changes import AuditEntry, EntryKind
from changeaudit.models.config import ChangeAuditConfig
from changeaudit.models.fields import FieldSpec
from changeaudit.observability.logging import AuditLogger, StructlogAuditLogger, is_audit_logger
from changeaudit.observability.metrics import changes_total, entries_total, sink_failures_total
from changeaudit.sinks import AuditSink
from changeaudit.tracking.context import extract_context
from changeaudit.tracking.engine import diff
from changeaudit.tracking.patch import apply_patch
from changeaudit.tracking.paths import MISSING, get_path
from changeaudit.tracking.validation import ConfigurationError, validate_field_specs

_log = structlog.get_logger(component="auditor")

# Tried in order when the configured actor field yields nothing.
_ACTOR_FALLBACK_FIELDS = ("created_by", "updated_by", "modified_by", "user_id", "userId")


class InvalidOptionError(ConfigurationError):
    """An auditor option has the wrong type or value."""


@dataclass(frozen=True)
class SoftDeleteRule:
    """An update that sets ``field`` to ``value`` is audited as a delete."""

    field: str
    value: Any


@dataclass
class AuditorOptions:
    """Per-subject auditing options."""

    subject: str
    fields: list[FieldSpec] = field(default_factory=list)
    subject_key: str = "_id"
    context_paths: list[str] | None = None
    soft_delete: SoftDeleteRule | None = None
    capture_whole_doc: bool = False
    compress: bool = False
    actor_field: str = "created_by"
    logger: AuditLogger | None = None

    @classmethod
    def from_config(
        cls,
        subject: str,
        fields: list[FieldSpec],
        config: ChangeAuditConfig,
        **overrides: Any,
    ) -> AuditorOptions:
        """Seed options from the environment-loaded config; keyword overrides win."""
        values: dict[str, Any] = {
            "subject_key": config.entry.subject_key,
            "actor_field": config.entry.actor_field,
            "capture_whole_doc": config.entry.capture_whole_doc,
            "compress": config.entry.compress_docs,
        }
        values.update(overrides)
        return cls(subject=subject, fields=fields, **values)


def validate_options(options: AuditorOptions) -> None:
    """Raise ``ConfigurationError`` for the first invalid option found."""
    if not isinstance(options.subject, str) or not options.subject:
        raise InvalidOptionError("subject", "subject is required and must be a string")

    validate_field_specs(options.fields)

    if not isinstance(options.subject_key, str) or not options.subject_key:
        raise InvalidOptionError("subject_key", "subject_key must be a non-empty string")

    if not isinstance(options.actor_field, str) or not options.actor_field:
        raise InvalidOptionError("actor_field", "actor_field must be a non-empty string")

    if options.context_paths is not None and (
        not isinstance(options.context_paths, (list, tuple))
        or not all(isinstance(path, str) for path in options.context_paths)
    ):
        raise InvalidOptionError("context_paths", "context_paths must be a list of path strings")

    if options.soft_delete is not None:
        rule = options.soft_delete
        if not isinstance(rule, SoftDeleteRule) or not isinstance(rule.field, str) or not rule.field:
            raise InvalidOptionError("soft_delete", "soft_delete must be a SoftDeleteRule with a field path")

    for flag in ("capture_whole_doc", "compress"):
        if not isinstance(getattr(options, flag), bool):
            raise InvalidOptionError(flag, f"{flag} must be a boolean")

    if options.logger is not None and not is_audit_logger(options.logger):
        raise InvalidOptionError("logger", "logger must have .error and .warn methods")


class ChangeAuditor:
    """Builds and records audit entries for one subject.

    Args:
        options:    Validated at construction.
        sink:       Where ``record_*`` writes entries.  Optional when only the
                    ``entry_for_*`` builders are used.
        compressor: Snapshot compressor used when ``options.compress`` is set.
    """

    def __init__(
        self,
        options: AuditorOptions,
        sink: AuditSink | None = None,
        compressor: Compressor | None = None,
    ) -> None:
        validate_options(options)
        self._options = options
        self._fields = list(options.fields)
        self._mask_rules = collect_mask_rules(self._fields)
        self._logger: AuditLogger = options.logger or StructlogAuditLogger()
        self._sink = sink
        self._compressor = compressor
        self._log = _log.bind(subject=options.subject)

    @property
    def options(self) -> AuditorOptions:
        return self._options

    # ------------------------------------------------------------------
    # Document inspection
    # ------------------------------------------------------------------

    def subject_id(self, doc: Any, fallback: Any = None) -> Any:
        """Read the subject key from *doc*, then from *fallback* (e.g. a query filter)."""
        value = get_path(doc, self._options.subject_key)
        if not value:
            value = get_path(fallback, self._options.subject_key)
        return None if value is MISSING else value

    def extract_actor(self, doc: Any = None, context: Mapping[str, Any] | None = None) -> Any:
        """Resolve who made the change.

        The configured actor field is looked up in the operation context, then
        in the document, then the usual user fields on the document.
        """
        field_name = self._options.actor_field
        for source in (context, doc):
            value = get_path(source, field_name)
            if value is not MISSING and value is not None:
                return value

        for fallback in _ACTOR_FALLBACK_FIELDS:
            value = get_path(doc, fallback)
            if value is not MISSING and value is not None:
                return value
        return None

    def is_soft_delete(self, before: Any, after: Any) -> bool:
        """True when the soft-delete flag is newly set by this change."""
        rule = self._options.soft_delete
        if rule is None or before is None:
            return False
        was_deleted = get_path(before, rule.field) == rule.value
        will_be_deleted = get_path(after, rule.field) == rule.value
        return not was_deleted and will_be_deleted

    # ------------------------------------------------------------------
    # Entry builders
    # ------------------------------------------------------------------

    def _build(
        self,
        kind: EntryKind,
        subject_id: Any,
        actor: Any,
        before: Any,
        after: Any,
        changes: list[Any] | None = None,
    ) -> AuditEntry:
        context = None
        if kind != EntryKind.UPDATE and self._options.context_paths:
            context = extract_context(self._options.context_paths, before, after)

        entry = build_entry(
            subject_id,
            self._options.subject,
            kind,
            changes or [],
            actor=actor,
            before_doc=before,
            after_doc=after,
            context=context,
            capture_whole_doc=self._options.capture_whole_doc,
            compress=self._options.compress,
            mask_rules=self._mask_rules,
            compressor=self._compressor,
        )

        entries_total.labels(subject=self._options.subject, kind=kind.value).inc()
        for change in entry.changes:
            changes_total.labels(subject=self._options.subject, change_kind=change.kind.value).inc()
        self._log.debug(
            "audit_entry_built",
            kind=kind.value,
            subject_id=str(subject_id),
            changes=len(entry.changes),
        )
        return entry

    def entry_for_create(self, after: Mapping[str, Any], context: Mapping[str, Any] | None = None) -> AuditEntry:
        return self._build(
            EntryKind.CREATE,
            self.subject_id(after),
            self.extract_actor(after, context),
            None,
            after,
        )

    def entry_for_delete(self, before: Mapping[str, Any], context: Mapping[str, Any] | None = None) -> AuditEntry:
        return self._build(
            EntryKind.DELETE,
            self.subject_id(before),
            self.extract_actor(before, context),
            before,
            None,
        )

    def entry_for_update(
        self,
        before: Mapping[str, Any],
        after: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
    ) -> AuditEntry | None:
        """Diff two snapshots.

        Returns a delete entry when the update newly sets the soft-delete flag,
        ``None`` when no tracked field changed.
        """
        subject_id = self.subject_id(after, query) or self.subject_id(before)
        actor = self.extract_actor(after, context)

        if self.is_soft_delete(before, after):
            return self._build(EntryKind.DELETE, subject_id, actor, before, after)

        changes = diff(before, after, self._fields)
        if not changes:
            self._log.debug("audit_update_unchanged", subject_id=str(subject_id))
            return None
        return self._build(EntryKind.UPDATE, subject_id, actor, before, after, changes)

    def entry_for_patch(
        self,
        before: Mapping[str, Any] | None,
        patch: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        upsert: bool = False,
    ) -> AuditEntry | None:
        """Simulate *patch* on *before*, then audit like ``entry_for_update``.

        With no before snapshot the patch only produces an entry when it
        upserts, in which case it is audited as a create.
        """
        after = apply_patch(before, patch, self._fields)
        if before is None:
            if not upsert:
                return None
            return self._build(
                EntryKind.CREATE,
                self.subject_id(after, query),
                self.extract_actor(after, context),
                None,
                after,
            )
        return self.entry_for_update(before, after, context, query=query)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self, entry: AuditEntry | None) -> AuditEntry | None:
        """Write *entry* to the sink.  Never raises; returns None on failure."""
        if entry is None:
            return None
        if self._sink is None:
            self._logger.warn(f"[changeaudit:{self._options.subject}] no sink configured; entry dropped")
            return None
        try:
            self._sink.write(entry)
        except Exception as exc:  # noqa: BLE001
            sink_failures_total.labels(subject=self._options.subject).inc()
            self._logger.error(
                exc,
                f"[changeaudit:{self._options.subject}] failed to write audit entry. ID: {entry.subject_id}.",
            )
            return None
        return entry

    def record_create(self, after: Mapping[str, Any], context: Mapping[str, Any] | None = None) -> AuditEntry | None:
        return self.record(self._guarded("create", lambda: self.entry_for_create(after, context)))

    def record_delete(self, before: Mapping[str, Any], context: Mapping[str, Any] | None = None) -> AuditEntry | None:
        return self.record(self._guarded("delete", lambda: self.entry_for_delete(before, context)))

    def record_update(
        self,
        before: Mapping[str, Any],
        after: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
    ) -> AuditEntry | None:
        return self.record(self._guarded("update", lambda: self.entry_for_update(before, after, context, query=query)))

    def record_patch(
        self,
        before: Mapping[str, Any] | None,
        patch: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
        *,
        query: Mapping[str, Any] | None = None,
        upsert: bool = False,
    ) -> AuditEntry | None:
        return self.record(
            self._guarded(
                "patch",
                lambda: self.entry_for_patch(before, patch, context, query=query, upsert=upsert),
            )
        )

    def _guarded(self, operation: str, build: Any) -> AuditEntry | None:
        # Auditing must never abort the audited operation.
        try:
            return build()
        except Exception as exc:  # noqa: BLE001
            self._logger.error(exc, f"[changeaudit:{self._options.subject}] failed to build {operation} entry.")
            return None

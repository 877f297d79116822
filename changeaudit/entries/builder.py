"""Audit entry assembly.

``build_entry`` wraps a change list into an ``AuditEntry``.  When
whole-document capture is on, each snapshot is deep-cloned with the
configured masks applied and optionally compressed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from changeaudit.entries.compression import Compressor, GzipCompressor, compress_snapshot
from changeaudit.models.changes import AuditEntry, ChangeRecord, EntryKind
from changeaudit.models.fields import FieldSpec
from changeaudit.tracking.paths import MISSING
from changeaudit.tracking.values import MaskRule, stringify

MaskRules = Mapping[str, MaskRule]


def collect_mask_rules(specs: Sequence[FieldSpec] | None, prefix: str = "") -> dict[str, MaskRule]:
    """Flatten the mask rules of a FieldSpec tree into ``{qualified path: rule}``."""
    rules: dict[str, MaskRule] = {}
    for spec in specs or ():
        if not spec.path:
            continue
        name = f"{prefix}.{spec.path}" if prefix else spec.path
        if spec.mask_rule is not None:
            rules[name] = spec.mask_rule
        if spec.children:
            rules.update(collect_mask_rules(spec.children, name))
    return rules


def _clone(value: Any, rules: MaskRules, path: str) -> Any:
    if path and path in rules and value is not None:
        return stringify(value, rules[path])
    if isinstance(value, Mapping):
        cloned: dict[str, Any] = {}
        for key, child in value.items():
            if child is MISSING:
                continue
            cloned[key] = _clone(child, rules, f"{path}.{key}" if path else str(key))
        return cloned
    if isinstance(value, (list, tuple)):
        # Elements share their list's path: "items.qty" covers every element.
        return [_clone(item, rules, path) for item in value]
    return value


def mask_snapshot(snapshot: Any, mask_rules: MaskRules | None = None) -> Any:
    """Deep-clone *snapshot*, substituting masked values and dropping MISSING ones."""
    if snapshot is None or snapshot is MISSING:
        return None
    return _clone(snapshot, mask_rules or {}, "")


def _capture(snapshot: Any, mask_rules: MaskRules | None, compressor: Compressor | None) -> Any:
    if snapshot is None or snapshot is MISSING:
        return None
    masked = mask_snapshot(snapshot, mask_rules)
    if compressor is not None:
        return compress_snapshot(masked, compressor)
    return masked


def build_entry(
    subject_id: Any,
    subject: str,
    kind: EntryKind | str,
    changes: Iterable[ChangeRecord],
    actor: Any = None,
    before_doc: Any = None,
    after_doc: Any = None,
    context: dict[str, Any] | None = None,
    *,
    capture_whole_doc: bool = False,
    compress: bool = False,
    mask_rules: MaskRules | None = None,
    compressor: Compressor | None = None,
) -> AuditEntry:
    """Assemble one audit entry.

    Args:
        subject_id:        Identifier of the audited document.
        subject:           Name of the audited collection/model.
        kind:              create, update or delete.
        changes:           Field-level change records (may be empty).
        actor:             Whoever made the change; any value, or None.
        before_doc:        Snapshot before the change.
        after_doc:         Snapshot after the change.
        context:           Entry-level context (create/delete entries).
        capture_whole_doc: Keep the snapshots on the entry.  When False they
                           are left out of the entry entirely.
        compress:          Store snapshots as compressed canonical JSON.
        mask_rules:        Path -> mask applied to captured snapshots.
        compressor:        Compression collaborator; gzip when omitted.
    """
    entry = AuditEntry(
        subject=subject,
        subject_id=subject_id,
        kind=EntryKind(kind),
        changes=list(changes),
        actor=actor,
        context=context or None,
    )

    if capture_whole_doc:
        active = (compressor or GzipCompressor()) if compress else None
        entry.before_snapshot = _capture(before_doc, mask_rules, active)
        entry.after_snapshot = _capture(after_doc, mask_rules, active)

    return entry

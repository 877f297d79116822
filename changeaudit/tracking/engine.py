"""Change-tracking engine.

Walks a FieldSpec tree over a before/after snapshot pair and returns the flat,
ordered list of ChangeRecord.  Every handler is a pure function that returns
a fresh list; nothing is accumulated in shared state and neither snapshot is
mutated.

Field names inside keyed arrays are qualified with the parent path
(``items.qty``), without the element key, so the same name repeats once per
changed element.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from changeaudit.models.changes import ChangeKind, ChangeRecord
from changeaudit.models.fields import ArrayKind, FieldSpec
from changeaudit.tracking.arrays import DeltaStatus, diff_keyed_list, diff_primitive_list
from changeaudit.tracking.context import extract_context, merge_context
from changeaudit.tracking.paths import MISSING, get_path
from changeaudit.tracking.values import exists, semantically_equal, stringify


@dataclass(frozen=True)
class _Scope:
    """Documents visible to context extraction at one recursion level."""

    root_before: Any
    root_after: Any
    before_item: Mapping[str, Any] | None = None
    after_item: Mapping[str, Any] | None = None


def _text(value: Any) -> str | None:
    if value is None or value is MISSING:
        return None
    return value


def diff(before_doc: Any, after_doc: Any, specs: Sequence[FieldSpec] | None) -> list[ChangeRecord]:
    """Return the change records between two snapshots for the tracked fields."""
    if not specs:
        return []

    scope = _Scope(root_before=before_doc, root_after=after_doc)
    records: list[ChangeRecord] = []
    for spec in specs:
        if not spec.path:
            continue
        records.extend(
            _diff_field(
                spec,
                get_path(before_doc, spec.path),
                get_path(after_doc, spec.path),
                spec.path,
                scope,
            )
        )
    return records


get_tracked_changes = diff


def _diff_field(spec: FieldSpec, before: Any, after: Any, field_name: str, scope: _Scope) -> list[ChangeRecord]:
    match spec.array_kind:
        case ArrayKind.PRIMITIVE_LIST:
            return _diff_primitive_field(spec, before, after, field_name, scope)
        case ArrayKind.KEYED_OBJECT_LIST:
            return _diff_keyed_field(spec, before, after, field_name, scope)
        case _:
            return _diff_generic_field(spec, before, after, field_name, scope)


def _scope_context(spec: FieldSpec, scope: _Scope) -> dict[str, Any] | None:
    return extract_context(
        spec.context_rule,
        scope.root_before,
        scope.root_after,
        scope.before_item,
        scope.after_item,
    )


def _diff_generic_field(
    spec: FieldSpec,
    before: Any,
    after: Any,
    field_name: str,
    scope: _Scope,
) -> list[ChangeRecord]:
    before_exists = exists(before)
    after_exists = exists(after)
    if not before_exists and not after_exists:
        return []

    if after_exists and not before_exists:
        kind = ChangeKind.ADD
    elif before_exists and not after_exists:
        kind = ChangeKind.REMOVE
    elif not semantically_equal(before, after):
        kind = ChangeKind.EDIT
    else:
        return []

    return [
        ChangeRecord(
            field_name=field_name,
            kind=kind,
            from_value=_text(stringify(before, spec.mask_rule)) if before_exists else None,
            to_value=_text(stringify(after, spec.mask_rule)) if after_exists else None,
            context=_scope_context(spec, scope),
        )
    ]


def _diff_primitive_field(
    spec: FieldSpec,
    before: Any,
    after: Any,
    field_name: str,
    scope: _Scope,
) -> list[ChangeRecord]:
    delta = diff_primitive_list(before, after)
    if not delta.added and not delta.removed:
        return []

    context = _scope_context(spec, scope)
    added = [
        ChangeRecord(
            field_name=field_name,
            kind=ChangeKind.ADD,
            from_value=None,
            to_value=_text(stringify(item, spec.mask_rule)),
            context=context,
        )
        for item in delta.added
    ]
    removed = [
        ChangeRecord(
            field_name=field_name,
            kind=ChangeKind.REMOVE,
            from_value=_text(stringify(item, spec.mask_rule)),
            to_value=None,
            context=context,
        )
        for item in delta.removed
    ]
    return added + removed


def _element_value(spec: FieldSpec, element: Mapping[str, Any] | None) -> str | None:
    if element is None or not spec.value_field:
        return None
    return _text(stringify(get_path(element, spec.value_field), spec.mask_rule))


def _diff_keyed_field(
    spec: FieldSpec,
    before: Any,
    after: Any,
    field_name: str,
    scope: _Scope,
) -> list[ChangeRecord]:
    if not spec.array_key:
        return []

    records: list[ChangeRecord] = []
    for delta in diff_keyed_list(before, after, spec.array_key):
        context = extract_context(spec.context_rule, scope.root_before, scope.root_after, delta.before, delta.after)
        match delta.status:
            case DeltaStatus.ADDED:
                records.append(
                    ChangeRecord(
                        field_name=field_name,
                        kind=ChangeKind.ADD,
                        from_value=None,
                        to_value=_element_value(spec, delta.after),
                        context=context,
                    )
                )
            case DeltaStatus.REMOVED:
                records.append(
                    ChangeRecord(
                        field_name=field_name,
                        kind=ChangeKind.REMOVE,
                        from_value=_element_value(spec, delta.before),
                        to_value=None,
                        context=context,
                    )
                )
            case DeltaStatus.RETAINED if spec.children:
                records.extend(_diff_children(spec, delta.before, delta.after, field_name, scope, context))
            case _:
                # Retained element, no children: untracked contents are ignored.
                pass
    return records


def _diff_children(
    spec: FieldSpec,
    before_item: Mapping[str, Any] | None,
    after_item: Mapping[str, Any] | None,
    parent_name: str,
    scope: _Scope,
    parent_context: dict[str, Any] | None,
) -> list[ChangeRecord]:
    """Diff the tracked sub-fields of one keyed element present on both sides."""
    child_scope = replace(scope, before_item=before_item, after_item=after_item)
    records: list[ChangeRecord] = []
    for child in spec.children or ():
        if not child.path:
            continue
        child_records = _diff_field(
            child,
            get_path(before_item, child.path),
            get_path(after_item, child.path),
            f"{parent_name}.{child.path}",
            child_scope,
        )
        if parent_context is not None:
            child_records = [
                replace(record, context=merge_context(parent_context, record.context)) for record in child_records
            ]
        records.extend(child_records)
    return records

"""Auxiliary context attached to change records."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from changeaudit.models.fields import ContextRule, ContextRuleInput
from changeaudit.tracking.paths import MISSING, get_path, set_path


def as_context_rule(rule: ContextRuleInput | None) -> ContextRule | None:
    """Normalize the accepted rule shapes into a ``ContextRule``.

    A bare list of paths is shorthand for ``ContextRule(document=paths)``.
    Mappings may spell the document bucket ``document`` or ``doc``.
    """
    if rule is None:
        return None
    if isinstance(rule, ContextRule):
        return rule
    if isinstance(rule, Mapping):
        document = rule.get("document", rule.get("doc"))
        item = rule.get("item")
        return ContextRule(
            document=tuple(document) if document is not None else None,
            item=tuple(item) if item is not None else None,
        )
    if isinstance(rule, Sequence) and not isinstance(rule, str):
        return ContextRule(document=tuple(rule))
    return None


def _resolve(paths: Sequence[str], primary: Any, fallback: Any) -> dict[str, Any]:
    bucket: dict[str, Any] = {}
    for path in paths:
        value = get_path(primary, path)
        if value is MISSING or value is None:
            value = get_path(fallback, path)
        set_path(bucket, path, None if value is MISSING else value)
    return bucket


def extract_context(
    rule: ContextRuleInput | None,
    before_doc: Any,
    after_doc: Any,
    before_item: Any = None,
    after_item: Any = None,
) -> dict[str, Any] | None:
    """Build the ``{"document": ..., "item": ...}`` context for a change.

    Returns ``None`` (not an empty dict) when no rule is configured.  Values
    are written under their dotted path as nested dicts, so ``user.name``
    lands at ``context["document"]["user"]["name"]``.
    """
    normalized = as_context_rule(rule)
    if normalized is None:
        return None

    context: dict[str, Any] = {}
    if normalized.document is not None:
        context["document"] = _resolve(normalized.document, after_doc, before_doc)
    if normalized.item is not None:
        item = after_item if after_item is not None else before_item
        context["item"] = _resolve(normalized.item, item, None) if item is not None else {}
    return context


def merge_context(parent: Mapping[str, Any] | None, child: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Merge an inherited context into a child's; the child wins on conflicts.

    Nested dicts on both sides are merged key by key, recursively.
    """
    if parent is None and child is None:
        return None
    merged: dict[str, Any] = dict(parent or {})
    for key, value in (child or {}).items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_context(existing, value)
        else:
            merged[key] = value
    return merged

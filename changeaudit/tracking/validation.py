"""Setup-time validation of the field-tracking configuration.

Validation runs once, before any diffing.  Every violation raises a distinct
``ConfigurationError`` subclass carrying the location of the offending node
(``fields[1].children[0]``) so the caller can fix the configuration; the
engine itself never re-checks.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from changeaudit.models.fields import ArrayKind, ContextRule, FieldSpec


class ConfigurationError(ValueError):
    """A tracking or auditor configuration is structurally invalid."""

    def __init__(self, location: str, detail: str) -> None:
        super().__init__(f"{location}: {detail}")
        self.location = location
        self.detail = detail


class InvalidFieldSpecError(ConfigurationError):
    """A configuration node is not a mapping / FieldSpec."""


class MissingPathError(ConfigurationError):
    """A node lacks a non-empty string ``path``."""


class InvalidArrayKindError(ConfigurationError):
    """``array_kind`` is not one of the known kinds."""


class MissingArrayKeyError(ConfigurationError):
    """A keyed-object list has no string ``array_key``."""


class InvalidValueFieldError(ConfigurationError):
    """``value_field`` is set but is not a string."""


class InvalidMaskRuleError(ConfigurationError):
    """``mask_rule`` is neither a string nor a callable."""


class InvalidContextRuleError(ConfigurationError):
    """``context_rule`` is neither a list of paths nor a document/item mapping."""


class InvalidChildrenError(ConfigurationError):
    """``children`` is set but is not a list."""


# Spellings accepted by ``parse_field_specs`` -> FieldSpec attribute.
_KEY_ALIASES: dict[str, str] = {
    "path": "path",
    "value": "path",
    "array_kind": "array_kind",
    "arrayKind": "array_kind",
    "arrayType": "array_kind",
    "array_key": "array_key",
    "arrayKey": "array_key",
    "value_field": "value_field",
    "valueField": "value_field",
    "mask_rule": "mask_rule",
    "maskRule": "mask_rule",
    "maskedValue": "mask_rule",
    "context_rule": "context_rule",
    "contextRule": "context_rule",
    "contextFields": "context_rule",
    "children": "children",
    "trackedFields": "children",
}

_KIND_ALIASES: dict[str, ArrayKind] = {
    "none": ArrayKind.NONE,
    "primitive-list": ArrayKind.PRIMITIVE_LIST,
    "simple": ArrayKind.PRIMITIVE_LIST,
    "keyed-object-list": ArrayKind.KEYED_OBJECT_LIST,
    "custom-key": ArrayKind.KEYED_OBJECT_LIST,
}


def _is_string_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value)


def _node_location(location: str, spec_path: Any) -> str:
    return f"{location}({spec_path})" if isinstance(spec_path, str) and spec_path else location


def _check_context_rule(rule: Any, where: str) -> None:
    if rule is None or _is_string_list(rule):
        return
    if isinstance(rule, ContextRule):
        members = {"document": rule.document, "item": rule.item}
    elif isinstance(rule, Mapping):
        members = {
            "document": rule.get("document", rule.get("doc")),
            "item": rule.get("item"),
        }
    else:
        raise InvalidContextRuleError(where, "context_rule must be a list of paths or a mapping of document/item lists")
    for name, paths in members.items():
        if paths is not None and not _is_string_list(paths):
            raise InvalidContextRuleError(where, f"context_rule.{name} must be a list of path strings")


def validate_field_spec(spec: Any, location: str) -> None:
    """Validate one node and, recursively, its children."""
    if not isinstance(spec, FieldSpec):
        raise InvalidFieldSpecError(location, "each tracked field must be a FieldSpec")

    if not isinstance(spec.path, str) or not spec.path:
        raise MissingPathError(location, "tracked field must have a non-empty string path")

    where = _node_location(location, spec.path)

    if not isinstance(spec.array_kind, ArrayKind):
        raise InvalidArrayKindError(where, f"unknown array kind {spec.array_kind!r}")

    if spec.is_keyed and (not isinstance(spec.array_key, str) or not spec.array_key):
        raise MissingArrayKeyError(where, "array_key is required and must be a string for keyed-object-list")

    if spec.value_field is not None and not isinstance(spec.value_field, str):
        raise InvalidValueFieldError(where, "value_field must be a string")

    if spec.mask_rule is not None and not isinstance(spec.mask_rule, str) and not callable(spec.mask_rule):
        raise InvalidMaskRuleError(where, "mask_rule must be a string or a callable")

    _check_context_rule(spec.context_rule, where)

    if spec.children is not None:
        if not isinstance(spec.children, (list, tuple)):
            raise InvalidChildrenError(where, "children must be a list of tracked fields")
        for idx, child in enumerate(spec.children):
            validate_field_spec(child, f"{where}.children[{idx}]")


def validate_field_specs(specs: Any, location: str = "fields") -> list[FieldSpec]:
    """Validate a whole FieldSpec list; returns it as a list on success."""
    if not isinstance(specs, (list, tuple)):
        raise InvalidChildrenError(location, "tracked fields must be a list")
    for idx, spec in enumerate(specs):
        validate_field_spec(spec, f"{location}[{idx}]")
    return list(specs)


def _parse_node(raw: Any, location: str) -> FieldSpec:
    if isinstance(raw, FieldSpec):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidFieldSpecError(location, "each tracked field must be a mapping")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        attr = _KEY_ALIASES.get(key)
        if attr is not None:
            values.setdefault(attr, value)

    path = values.get("path")
    if not isinstance(path, str) or not path:
        raise MissingPathError(location, "tracked field must have a non-empty string path")
    where = _node_location(location, path)

    kind_raw = values.get("array_kind")
    if kind_raw is None:
        kind = ArrayKind.NONE
    elif isinstance(kind_raw, str) and kind_raw in _KIND_ALIASES:
        kind = _KIND_ALIASES[kind_raw]
    else:
        raise InvalidArrayKindError(where, f"unknown array kind {kind_raw!r}")

    context_rule = values.get("context_rule")
    _check_context_rule(context_rule, where)
    if isinstance(context_rule, (list, tuple)):
        context_rule = ContextRule(document=tuple(context_rule))
    elif isinstance(context_rule, Mapping):
        document = context_rule.get("document", context_rule.get("doc"))
        item = context_rule.get("item")
        context_rule = ContextRule(
            document=tuple(document) if document is not None else None,
            item=tuple(item) if item is not None else None,
        )

    children_raw = values.get("children")
    children: tuple[FieldSpec, ...] | None = None
    if children_raw is not None:
        if not isinstance(children_raw, (list, tuple)):
            raise InvalidChildrenError(where, "children must be a list of tracked fields")
        children = tuple(_parse_node(child, f"{where}.children[{idx}]") for idx, child in enumerate(children_raw))

    mask_rule: str | Callable[[Any], str | None] | None = values.get("mask_rule")

    spec = FieldSpec(
        path=path,
        array_kind=kind,
        array_key=values.get("array_key"),
        value_field=values.get("value_field"),
        mask_rule=mask_rule,
        context_rule=context_rule,
        children=children,
    )
    validate_field_spec(spec, location)
    return spec


def parse_field_specs(raw: Sequence[Any], location: str = "fields") -> list[FieldSpec]:
    """Build validated FieldSpec objects from plain (e.g. JSON-loaded) mappings.

    Both the snake_case attribute names and the camelCase names used by the
    document-store plugins (``value``, ``arrayType``, ``trackedFields`` ...)
    are accepted.
    """
    if not isinstance(raw, (list, tuple)):
        raise InvalidChildrenError(location, "tracked fields must be a list")
    return [_parse_node(node, f"{location}[{idx}]") for idx, node in enumerate(raw)]

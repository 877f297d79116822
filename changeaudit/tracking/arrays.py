"""Array differencing: primitive lists as sets, object lists by key."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from changeaudit.tracking.values import canonical_json, stringify


@dataclass(frozen=True)
class ArrayDiff:
    """Elements gained and lost between two primitive lists."""

    added: list[Any] = field(default_factory=list)
    removed: list[Any] = field(default_factory=list)


class DeltaStatus(StrEnum):
    ADDED = "added"
    REMOVED = "removed"
    RETAINED = "retained"


@dataclass(frozen=True)
class KeyedDelta:
    """One key of a keyed-object list and its element on each side."""

    key: str
    before: Mapping[str, Any] | None
    after: Mapping[str, Any] | None

    @property
    def status(self) -> DeltaStatus:
        if self.before is None:
            return DeltaStatus.ADDED
        if self.after is None:
            return DeltaStatus.REMOVED
        return DeltaStatus.RETAINED


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _element_key(value: Any) -> tuple[str, Any]:
    # True and 1 must stay distinct; 1 and 1.0 collapse.
    if isinstance(value, bool):
        return ("bool", value)
    try:
        hash(value)
    except TypeError:
        try:
            return ("json", canonical_json(value))
        except (TypeError, ValueError, RecursionError):
            return ("id", id(value))
    return ("value", value)


def _unique(items: list[Any]) -> dict[tuple[str, Any], Any]:
    seen: dict[tuple[str, Any], Any] = {}
    for item in items:
        seen.setdefault(_element_key(item), item)
    return seen


def diff_primitive_list(before: Any, after: Any) -> ArrayDiff:
    """Set difference of two lists; duplicates collapse, order of first sight is kept.

    Non-list input is treated as an empty list.
    """
    before_set = _unique(_as_list(before))
    after_set = _unique(_as_list(after))
    return ArrayDiff(
        added=[item for key, item in after_set.items() if key not in before_set],
        removed=[item for key, item in before_set.items() if key not in after_set],
    )


def key_map(items: Any, key_field: str) -> dict[str, Mapping[str, Any]]:
    """Index mapping elements by ``str``-rendered key; keyless elements are dropped."""
    mapped: dict[str, Mapping[str, Any]] = {}
    for item in _as_list(items):
        if not isinstance(item, Mapping):
            continue
        key_value = item.get(key_field)
        if not key_value:
            continue
        mapped[stringify(key_value)] = item
    return mapped


def diff_keyed_list(before: Any, after: Any, key_field: str) -> Iterator[KeyedDelta]:
    """Yield one ``KeyedDelta`` per key in the union of both sides.

    Keys seen on the before side come first, then keys new on the after side.
    """
    before_map = key_map(before, key_field)
    after_map = key_map(after, key_field)

    for key in dict.fromkeys([*before_map, *after_map]):
        before_item = before_map.get(key)
        after_item = after_map.get(key)
        if before_item is None and after_item is None:
            continue
        yield KeyedDelta(key=key, before=before_item, after=after_item)

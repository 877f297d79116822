"""Field-tracking configuration structures."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ArrayKind(StrEnum):
    """How the value at a tracked path is compared."""

    NONE = "none"
    PRIMITIVE_LIST = "primitive-list"
    KEYED_OBJECT_LIST = "keyed-object-list"


class PatchOperator(StrEnum):
    """Patch operators understood by the simulator, in application order."""

    SET = "$set"
    SET_ON_INSERT = "$setOnInsert"
    UNSET = "$unset"
    ADD_TO_SET = "$addToSet"
    PUSH = "$push"
    PULL = "$pull"
    PULL_ALL = "$pullAll"
    POP = "$pop"
    INC = "$inc"
    MUL = "$mul"
    MIN = "$min"
    MAX = "$max"


@dataclass(frozen=True)
class ContextRule:
    """Which paths to copy into a change record's ``context``.

    ``document`` paths resolve against the whole snapshot (after first, then
    before); ``item`` paths resolve against the keyed-array element involved.
    """

    document: tuple[str, ...] | None = None
    item: tuple[str, ...] | None = None


ContextRuleInput = ContextRule | Sequence[str] | Mapping[str, Any]


@dataclass(frozen=True)
class FieldSpec:
    """One node of the tracking configuration tree.

    ``array_key`` is required exactly when ``array_kind`` is
    ``KEYED_OBJECT_LIST``.  ``children`` describe the tracked fields inside
    each keyed element.  None of this is checked here; run the list through
    ``changeaudit.tracking.validation`` once at setup.
    """

    path: str
    array_kind: ArrayKind = ArrayKind.NONE
    array_key: str | None = None
    value_field: str | None = None
    mask_rule: str | Callable[[Any], str | None] | None = None
    context_rule: ContextRuleInput | None = None
    children: tuple[FieldSpec, ...] | None = None

    @property
    def is_keyed(self) -> bool:
        return self.array_kind == ArrayKind.KEYED_OBJECT_LIST

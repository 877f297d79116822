"""Patch simulation.

Stores apply partial updates (``{"$set": ..., "$push": ...}``) without ever
handing back the resulting document.  ``simulate`` predicts the post-patch
value of the affected fields from the before snapshot so the engine can diff
a snapshot + patch exactly like two full snapshots::

    after = {**before, **simulate(patch, before, specs)}

Operators are applied in a fixed order, and each per-field operator sees the
result of the operators before it for that field:

    direct assignment < $set < $setOnInsert < $unset
        < $addToSet < $push < $pull < $pullAll < $pop
        < $inc < $mul < $min < $max

Assignment-style operators (direct keys, ``$set``, ``$setOnInsert``,
``$unset``) are copied for every key they name.  The operand-computing
operators only touch tracked paths; an untouched tracked path is absent from
the result.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from changeaudit.models.fields import FieldSpec, PatchOperator
from changeaudit.tracking.arrays import key_map
from changeaudit.tracking.paths import MISSING, get_path
from changeaudit.tracking.values import stringify, structurally_equal

_ASSIGNMENT_OPERATORS = (PatchOperator.SET, PatchOperator.SET_ON_INSERT)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _each(operand: Any) -> list[Any]:
    """Unwrap ``{"$each": [...]}``; any other operand is a single value."""
    if isinstance(operand, Mapping) and "$each" in operand:
        return _as_list(operand["$each"])
    return [operand]


def _add_to_set(current: Any, operand: Any, spec: FieldSpec) -> list[Any]:
    result = _as_list(current)
    incoming = _each(operand)

    if spec.array_key:
        known = key_map(result, spec.array_key)
        for item in incoming:
            if not isinstance(item, Mapping):
                continue
            key_value = item.get(spec.array_key)
            key = stringify(key_value) if key_value else None
            if key is not None and key in known:
                continue
            result.append(item)
            if key is not None:
                known[key] = item
        return result

    for item in incoming:
        if not any(structurally_equal(existing, item) for existing in result):
            result.append(item)
    return result


def _push(current: Any, operand: Any, spec: FieldSpec) -> list[Any]:
    return _as_list(current) + _each(operand)


def _matches_query(item: Any, query: Mapping[str, Any]) -> bool:
    if not isinstance(item, Mapping):
        return False
    return all(structurally_equal(item.get(key, MISSING), expected) for key, expected in query.items())


def _pull(current: Any, operand: Any, spec: FieldSpec) -> list[Any]:
    items = _as_list(current)
    if isinstance(operand, Mapping):
        return [item for item in items if not _matches_query(item, operand)]
    return [item for item in items if not structurally_equal(item, operand)]


def _pull_all(current: Any, operand: Any, spec: FieldSpec) -> list[Any]:
    doomed = operand if isinstance(operand, (list, tuple)) else [operand]
    return [item for item in _as_list(current) if not any(structurally_equal(item, d) for d in doomed)]


def _pop(current: Any, operand: Any, spec: FieldSpec) -> list[Any]:
    items = _as_list(current)
    if _is_number(operand) and operand == 1:
        return items[:-1]
    if _is_number(operand) and operand == -1:
        return items[1:]
    return items


def _arithmetic(op: Callable[[Any, Any], Any]) -> Callable[[Any, Any, FieldSpec], Any]:
    def apply(current: Any, operand: Any, spec: FieldSpec) -> Any:
        if not _is_number(operand):
            return current
        base = current if _is_number(current) else 0
        return op(base, operand)

    return apply


def _clamp(pick: Callable[[Any, Any], Any]) -> Callable[[Any, Any, FieldSpec], Any]:
    def apply(current: Any, operand: Any, spec: FieldSpec) -> Any:
        if current is MISSING or current is None:
            return operand
        try:
            return pick(current, operand)
        except TypeError:
            return operand

    return apply


_FIELD_OPERATORS: tuple[tuple[PatchOperator, Callable[[Any, Any, FieldSpec], Any]], ...] = (
    (PatchOperator.ADD_TO_SET, _add_to_set),
    (PatchOperator.PUSH, _push),
    (PatchOperator.PULL, _pull),
    (PatchOperator.PULL_ALL, _pull_all),
    (PatchOperator.POP, _pop),
    (PatchOperator.INC, _arithmetic(lambda a, b: a + b)),
    (PatchOperator.MUL, _arithmetic(lambda a, b: a * b)),
    (PatchOperator.MIN, _clamp(min)),
    (PatchOperator.MAX, _clamp(max)),
)


def _tracked_specs(tracked: Iterable[FieldSpec | str] | None) -> list[FieldSpec]:
    specs: dict[str, FieldSpec] = {}
    for entry in tracked or ():
        spec = FieldSpec(path=entry) if isinstance(entry, str) else entry
        if spec.path:
            specs.setdefault(spec.path, spec)
    return list(specs.values())


def simulate(
    patch: Mapping[str, Any] | None,
    before_doc: Mapping[str, Any] | None,
    tracked: Iterable[FieldSpec | str] | None,
) -> dict[str, Any]:
    """Predict the post-patch values of the fields *patch* touches.

    ``$unset`` fields come back as ``MISSING``.  Fields the patch does not
    touch are absent from the result.
    """
    fields: dict[str, Any] = {}
    if not patch:
        return fields

    for key, value in patch.items():
        if not key.startswith("$"):
            fields[key] = value

    for operator in _ASSIGNMENT_OPERATORS:
        operand = patch.get(operator)
        if isinstance(operand, Mapping):
            fields.update(operand)

    unset = patch.get(PatchOperator.UNSET)
    if isinstance(unset, Mapping):
        for key in unset:
            fields[key] = MISSING

    for spec in _tracked_specs(tracked):
        for operator, apply in _FIELD_OPERATORS:
            operands = patch.get(operator)
            if not isinstance(operands, Mapping) or spec.path not in operands:
                continue
            current = fields[spec.path] if spec.path in fields else get_path(before_doc, spec.path)
            fields[spec.path] = apply(current, operands[spec.path], spec)

    return fields


def apply_patch(
    before_doc: Mapping[str, Any] | None,
    patch: Mapping[str, Any] | None,
    tracked: Iterable[FieldSpec | str] | None,
) -> dict[str, Any]:
    """Overlay the simulated fields onto *before_doc* (which is left untouched)."""
    simulated = simulate(patch, before_doc, tracked)
    if before_doc is None:
        return simulated
    return {**before_doc, **simulated}

"""Dotted-path access into nested snapshots.

Paths use ``.`` as separator; list elements are addressed by their numeric
index (``items.0.qty``).  Absence is signalled with the ``MISSING`` sentinel,
never with an exception.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, Final


class _Missing:
    """Sentinel type for "no value at this path" (distinct from ``None``)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __copy__(self) -> _Missing:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _Missing:
        return self

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()


def _index(segment: str) -> int | None:
    try:
        return int(segment)
    except ValueError:
        return None


def get_path(record: Any, path: str) -> Any:
    """Return the value at *path* inside *record*, or ``MISSING``.

    A mapping that holds *path* as a literal key (dotted keys written by the
    patch simulator, for instance) answers directly.
    """
    if record is None or record is MISSING:
        return MISSING
    if isinstance(record, Mapping) and path in record:
        return record[path]

    current: Any = record
    for segment in path.split("."):
        if current is None or current is MISSING:
            return MISSING
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, (list, tuple)):
            idx = _index(segment)
            if idx is None or not 0 <= idx < len(current):
                return MISSING
            current = current[idx]
        else:
            return MISSING
    return current


def set_path(record: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Write *value* at *path*, creating intermediate dicts as needed.

    Existing lists are walked by index; lists are never created.  Any other
    non-container intermediate is replaced by an empty dict.
    """
    parts = path.split(".")
    current: Any = record
    for segment in parts[:-1]:
        if isinstance(current, list):
            idx = _index(segment)
            if idx is not None and 0 <= idx < len(current):
                if not isinstance(current[idx], (MutableMapping, list)):
                    current[idx] = {}
                current = current[idx]
                continue
            return
        nxt = current.get(segment)
        if not isinstance(nxt, (MutableMapping, list)):
            nxt = {}
            current[segment] = nxt
        current = nxt

    leaf = parts[-1]
    if isinstance(current, list):
        idx = _index(leaf)
        if idx is not None and 0 <= idx < len(current):
            current[idx] = value
        return
    current[leaf] = value

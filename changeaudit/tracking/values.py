"""Value comparison and stringification for change records.

Two notions of equality live here:

* ``structurally_equal`` -- deep equality used by the array differencer and
  the patch simulator.
* ``semantically_equal`` -- the stricter rule used for edit detection.  It
  never coerces across primitive types (``1`` vs ``"1"``) but does accept a
  datetime and its ISO-8601 string as equal.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from changeaudit.tracking.paths import MISSING

_log = structlog.get_logger(component="tracking.values")

MaskRule = str | Callable[[Any], "str | None"]

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def epoch_ms(value: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return (_as_utc(value) - _EPOCH) // _MILLISECOND


def to_iso(value: datetime) -> str:
    """Render *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    utc = _as_utc(value)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"


def is_iso_date_string(value: object) -> bool:
    return isinstance(value, str) and _ISO_DATE_RE.match(value) is not None


def exists(value: Any) -> bool:
    """False for ``None``, ``MISSING`` and ``""``; True for everything else."""
    return value is not None and value is not MISSING and value != ""


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equal(a: Any, b: Any) -> bool:
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    try:
        return bool(a == b)
    except Exception:  # noqa: BLE001
        return False


def structurally_equal(a: Any, b: Any) -> bool:
    """Deep equality over dicts, lists/tuples, datetimes and scalars."""
    if a is b:
        return True

    if isinstance(a, datetime) and isinstance(b, datetime):
        return epoch_ms(a) == epoch_ms(b)

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(structurally_equal(x, y) for x, y in zip(a, b, strict=True))

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if set(a.keys()) != set(b.keys()):
            return False
        return all(structurally_equal(a[key], b[key]) for key in a)

    if isinstance(a, (list, tuple, Mapping, datetime)) or isinstance(b, (list, tuple, Mapping, datetime)):
        return False

    return _strict_equal(a, b)


def semantically_equal(a: Any, b: Any) -> bool:
    """Equality used to decide whether an existing value was edited."""
    if a is None and b is None:
        return True
    if a is MISSING and b is MISSING:
        return True
    if a is None or b is None or a is MISSING or b is MISSING:
        return False

    if isinstance(a, datetime) and isinstance(b, datetime):
        return epoch_ms(a) == epoch_ms(b)
    if isinstance(a, datetime) and isinstance(b, str):
        return to_iso(a) == b
    if isinstance(a, str) and isinstance(b, datetime):
        return a == to_iso(b)

    # No cross-type coercion between strings and numbers/booleans.
    if isinstance(a, str) and (_is_number(b) or isinstance(b, bool)):
        return False
    if isinstance(b, str) and (_is_number(a) or isinstance(a, bool)):
        return False

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return structurally_equal(a, b)
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return structurally_equal(a, b)

    return _strict_equal(a, b)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    if value is MISSING:
        return None
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonical_json(value: Any) -> str:
    """Compact JSON with sorted keys; datetimes rendered as ISO-8601.

    Raises ``TypeError`` / ``ValueError`` for values that cannot be
    serialized (cycles, foreign objects).
    """
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )


def stringify(value: Any, mask_rule: MaskRule | None = None) -> Any:
    """Render *value* for a change record.

    ``None`` and ``MISSING`` pass through untouched so callers can tell
    "did not exist" apart from an empty string.
    """
    if value is None or value is MISSING:
        return value
    if isinstance(mask_rule, str):
        return mask_rule
    if mask_rule is not None:
        return mask_rule(value)

    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        try:
            return canonical_json(value)
        except (TypeError, ValueError, RecursionError) as exc:
            _log.debug("stringify_fallback", error=str(exc), value_type=type(value).__name__)
            return _fallback_str(value)
    return str(value)


def _fallback_str(value: Any) -> str:
    try:
        return str(value)
    except RecursionError:
        return f"<{type(value).__name__}>"

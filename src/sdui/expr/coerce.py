"""
Total coercion of evaluated values toward a requested Python type.

Every function here returns ``None`` when a value cannot be converted;
none of them raise and none of them substitute ``0``/``False``. Callers
apply their own fallback defaults.
"""

from __future__ import annotations

import json
import re
from typing import Any

# Locale-independent decimal grammar: no underscores, no inf/nan, no spaces inside
_DECIMAL_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def parse_number(text: str) -> int | float | None:
    """Parse a numeric string. Integral literals without a fraction yield ``int``."""
    candidate = text.strip()
    if not _DECIMAL_RE.fullmatch(candidate):
        return None
    if "." in candidate or "e" in candidate or "E" in candidate:
        return float(candidate)
    return int(candidate)


def to_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return None
    if isinstance(value, (int, float)):
        return value != 0
    return None


def to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        number = parse_number(value)
        if number is None:
            return None
        return to_int(number)
    return None


def to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        number = parse_number(value)
        return float(number) if number is not None else None
    return None


def to_number(value: Any) -> int | float | None:
    """Coerce to ``int`` or ``float``, keeping integral inputs integral."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return parse_number(value)
    return None


def to_text(value: Any) -> str | None:
    """String form used for coercion and for ``@{}`` interpolation."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError):
            return None
    return str(value)


def to_dict(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        decoded = _decode_json(value)
        return decoded if isinstance(decoded, dict) else None
    return None


def to_list(value: Any) -> list[Any] | None:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    if isinstance(value, str):
        decoded = _decode_json(value)
        return decoded if isinstance(decoded, list) else None
    return None


def _decode_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


_COERCERS = {
    bool: to_bool,
    int: to_int,
    float: to_float,
    str: to_text,
    dict: to_dict,
    list: to_list,
}


def coerce(value: Any, target: type | None) -> Any:
    """Coerce ``value`` toward ``target``; ``None``/``object`` pass through."""
    if value is None or target is None or target is object:
        return value
    coercer = _COERCERS.get(target)
    if coercer is None:
        return value if isinstance(value, target) else None
    return coercer(value)

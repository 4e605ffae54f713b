"""
Standard functions available to every binding.

The table is installed at the root of each page's scope chain, so a page
or component may shadow any of these names with its own variables.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from sdui.expr.coerce import to_float, to_int, to_number, to_text

_PATH_TOKEN_RE = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def json_get(data: Any, path: str | None) -> Any:
    """Resolve a path like ``items[0].name`` against nested maps and lists.

    Returns ``None`` if any segment is missing.
    """
    if path is None or path == "":
        return data
    current = data
    for name, index in _PATH_TOKEN_RE.findall(path):
        if current is None:
            return None
        if index:
            position = int(index)
            if not isinstance(current, list) or position >= len(current):
                return None
            current = current[position]
        elif isinstance(current, Mapping):
            current = current.get(name)
        else:
            return None
    return current


def _concat(*parts: Any) -> str:
    return "".join(to_text(p) or "" for p in parts)


def _length(value: Any) -> int:
    if value is None:
        return 0
    return len(value)


def _contains(container: Any, item: Any) -> bool:
    if container is None:
        return False
    if isinstance(container, str):
        return to_text(item) in container if item is not None else False
    return item in container


def _numbers(values: tuple[Any, ...]) -> list[int | float]:
    if len(values) == 1 and isinstance(values[0], list):
        values = tuple(values[0])
    numbers = [to_number(v) for v in values]
    return [n for n in numbers if n is not None]


def _sum(*values: Any) -> int | float:
    return sum(_numbers(values))


def _min(*values: Any) -> int | float | None:
    numbers = _numbers(values)
    return min(numbers) if numbers else None


def _max(*values: Any) -> int | float | None:
    numbers = _numbers(values)
    return max(numbers) if numbers else None


def _abs(value: Any) -> int | float | None:
    number = to_number(value)
    return abs(number) if number is not None else None


def _round(value: Any, ndigits: Any = 0) -> int | float | None:
    number = to_number(value)
    if number is None:
        return None
    digits = to_int(ndigits) or 0
    return round(number, digits) if digits else round(number)


def _coalesce(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _split(value: Any, separator: Any = ",") -> list[str]:
    text = to_text(value)
    if text is None:
        return []
    return text.split(to_text(separator) or ",")


def _join(values: Any, separator: Any = ",") -> str:
    if not isinstance(values, list):
        return ""
    return (to_text(separator) or "").join(to_text(v) or "" for v in values)


STD_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "concat": _concat,
    "length": _length,
    "isEqual": lambda a, b: a == b,
    "isNotEqual": lambda a, b: a != b,
    "isNull": lambda v: v is None,
    "isNotNull": lambda v: v is not None,
    "condition": lambda cond, a, b=None: a if cond else b,
    "coalesce": _coalesce,
    "toInt": to_int,
    "toDouble": to_float,
    "toString": to_text,
    "jsonGet": json_get,
    "contains": _contains,
    "sum": _sum,
    "min": _min,
    "max": _max,
    "abs": _abs,
    "round": _round,
    "upper": lambda v: (to_text(v) or "").upper(),
    "lower": lambda v: (to_text(v) or "").lower(),
    "split": _split,
    "join": _join,
    "now": lambda: datetime.now().isoformat(),
}

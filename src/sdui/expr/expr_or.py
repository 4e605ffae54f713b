"""
Literal-or-bound values.

A raw JSON value from the delivered document is either a literal or a
binding. Bindings are strings carrying ``@{...}`` segments:

- ``"@{count + 1}"`` is a full binding and evaluates to the raw result.
- ``"Hello @{user.name}!"`` is an interpolated binding and evaluates to a
  string.

Evaluation never raises into the caller unless ``strict=True``; failures
log at debug level and yield ``None``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from sdui.errors import ExpressionError
from sdui.expr.ast import Expr, free_variables
from sdui.expr.coerce import coerce, to_text
from sdui.expr.evaluator import evaluate
from sdui.expr.parser import parse_expr
from sdui.expr.scope import ScopeContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OPEN = "@{"


class _Segment:
    """An ``@{...}`` occurrence inside a binding string."""

    __slots__ = ("source",)

    def __init__(self, source: str) -> None:
        self.source = source

    @property
    def ast(self) -> Expr:
        return parse_expr(self.source)


def split_binding(text: str) -> list[str | _Segment] | None:
    """Split ``text`` into literal chunks and expression segments.

    Returns ``None`` when the text carries no complete ``@{...}`` segment.
    Braces nested inside the expression and braces inside quoted strings
    are balanced, so object literals and ``"}"`` are allowed.
    """
    if _OPEN not in text:
        return None

    parts: list[str | _Segment] = []
    i = 0
    literal_start = 0
    n = len(text)
    found = False

    while i < n:
        if text.startswith(_OPEN, i):
            end = _find_close(text, i + 2)
            if end is None:
                break
            if i > literal_start:
                parts.append(text[literal_start:i])
            parts.append(_Segment(text[i + 2 : end].strip()))
            found = True
            i = end + 1
            literal_start = i
            continue
        i += 1

    if not found:
        return None
    if literal_start < n:
        parts.append(text[literal_start:])
    return parts


def _find_close(text: str, start: int) -> int | None:
    depth = 0
    quote: str | None = None
    i = start
    while i < len(text):
        c = text[i]
        if quote:
            if c == "\\":
                i += 2
                continue
            if c == quote:
                quote = None
        elif c in ("'", '"'):
            quote = c
        elif c == "{":
            depth += 1
        elif c == "}":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    return None


def is_binding(value: Any) -> bool:
    return isinstance(value, str) and split_binding(value) is not None


class ExprOr(Generic[T]):
    """Either a literal value or a bound expression string.

    Bound values are re-evaluated on every ``evaluate()`` call; only the
    parse of the source is cached.

    Example:
        ExprOr.from_value("@{count * 2}").evaluate(scope)  # 4 when count == 2
        ExprOr.from_value(3).evaluate(scope)               # 3
    """

    __slots__ = ("_raw", "_parts")

    def __init__(self, raw: Any, parts: list[str | _Segment] | None = None) -> None:
        self._raw = raw
        self._parts = parts

    @classmethod
    def from_value(cls, raw: Any) -> ExprOr[Any] | None:
        """Classify a raw JSON value. ``None`` stays absent."""
        if raw is None:
            return None
        if isinstance(raw, ExprOr):
            return raw
        if isinstance(raw, str):
            return cls(raw, split_binding(raw))
        return cls(raw)

    @classmethod
    def literal(cls, value: T) -> ExprOr[T]:
        return cls(value)

    @property
    def is_bound(self) -> bool:
        return self._parts is not None

    @property
    def is_full_binding(self) -> bool:
        return self._parts is not None and len(self._parts) == 1 and isinstance(self._parts[0], _Segment)

    @property
    def raw(self) -> Any:
        return self._raw

    @property
    def dependencies(self) -> frozenset[str]:
        """Root identifiers read by this value (empty for literals)."""
        names: set[str] = set()
        for part in self._parts or ():
            if isinstance(part, _Segment):
                try:
                    names |= free_variables(part.ast)
                except ExpressionError:
                    continue
        return frozenset(names)

    def evaluate(
        self,
        scope: ScopeContext | None,
        as_type: type | None = None,
        *,
        strict: bool = False,
    ) -> Any:
        """Evaluate against ``scope`` and coerce toward ``as_type``.

        Returns ``None`` on any evaluation error or failed coercion unless
        ``strict`` is set, in which case the ``ExpressionError`` propagates.
        """
        if self._parts is None:
            return coerce(self._raw, as_type)
        try:
            value = self._evaluate_parts(scope)
        except ExpressionError as e:
            if strict:
                raise
            logger.debug("Binding %r failed: %s", self._raw, e)
            return None
        return coerce(value, as_type)

    def _evaluate_parts(self, scope: ScopeContext | None) -> Any:
        assert self._parts is not None
        if self.is_full_binding:
            segment = self._parts[0]
            assert isinstance(segment, _Segment)
            return evaluate(segment.ast, scope)
        chunks: list[str] = []
        for part in self._parts:
            if isinstance(part, _Segment):
                chunks.append(to_text(evaluate(part.ast, scope)) or "")
            else:
                chunks.append(part)
        return "".join(chunks)

    def deep_evaluate(self, scope: ScopeContext | None) -> Any:
        """Evaluate, resolving bindings nested in literal maps and lists."""
        if self._parts is not None:
            return self.evaluate(scope)
        return deep_evaluate(self._raw, scope)

    def to_json(self) -> Any:
        return self._raw

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ExprOr) and other._raw == self._raw

    def __hash__(self) -> int:
        return hash(repr(self._raw))

    def __repr__(self) -> str:
        kind = "Bound" if self.is_bound else "Literal"
        return f"{kind}({self._raw!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.from_value,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: v.to_json() if isinstance(v, ExprOr) else v
            ),
        )


def deep_evaluate(raw: Any, scope: ScopeContext | None) -> Any:
    """Resolve bindings anywhere inside a JSON-like structure."""
    if isinstance(raw, ExprOr):
        return raw.deep_evaluate(scope)
    if isinstance(raw, str):
        parts = split_binding(raw)
        if parts is None:
            return raw
        return ExprOr(raw, parts).evaluate(scope)
    if isinstance(raw, Mapping):
        return {key: deep_evaluate(value, scope) for key, value in raw.items()}
    if isinstance(raw, (list, tuple)):
        return [deep_evaluate(item, scope) for item in raw]
    return raw


def evaluate_value(raw: Any, scope: ScopeContext | None, as_type: type | None = None) -> Any:
    """Evaluate a raw prop value (literal or binding) toward ``as_type``."""
    expr = ExprOr.from_value(raw)
    if expr is None:
        return None
    return expr.evaluate(scope, as_type)

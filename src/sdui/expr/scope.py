"""
Chained, read-only identifier resolution for expression evaluation.

A scope link holds its own variables and falls through to ``enclosing``
on a miss. Links are never mutated; callers derive a new link with
``child()`` to overlay variables for a sub-render (list item, tab,
sub-flow result).
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

_MISSING = object()


class ScopeContext:
    """A named link in a resolution chain.

    Example:
        root = ScopeContext("root", {"greeting": "hi"})
        page = root.child("page", {"count": 1})
        page.resolve("greeting")  # (True, "hi")
        page.resolve("nope")      # (False, None)
    """

    def __init__(
        self,
        name: str = "",
        variables: Mapping[str, Any] | None = None,
        enclosing: ScopeContext | None = None,
    ) -> None:
        self.name = name
        self.variables: Mapping[str, Any] = MappingProxyType(dict(variables or {}))
        self.enclosing = enclosing

    def resolve(self, key: str) -> tuple[bool, Any]:
        """Resolve ``key`` child-first.

        Returns ``(found, value)``; ``(False, None)`` means no link in the
        chain declares the key, as opposed to ``(True, None)``.
        """
        found, value = self.lookup_local(key)
        if found:
            return True, value
        if self.enclosing is not None:
            return self.enclosing.resolve(key)
        return False, None

    def lookup_local(self, key: str) -> tuple[bool, Any]:
        """Resolve against this link only. Specialized links override this."""
        value = self.variables.get(key, _MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    def get(self, key: str, default: Any = None) -> Any:
        found, value = self.resolve(key)
        return value if found else default

    def __contains__(self, key: str) -> bool:
        return self.resolve(key)[0]

    def child(self, name: str = "", variables: Mapping[str, Any] | None = None) -> ScopeContext:
        """Derive a plain link enclosed by this one."""
        return ScopeContext(name=name, variables=variables, enclosing=self)

    def chain(self) -> list[ScopeContext]:
        """Links from this one to the root, innermost first."""
        links: list[ScopeContext] = []
        link: ScopeContext | None = self
        while link is not None:
            links.append(link)
            link = link.enclosing
        return links

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, keys={sorted(self.variables)})"

"""
Page-scoped reactive state.

- StateTree: session-wide registry of StateScopes keyed by namespace
- StateScope: one page (or component) instance's key/value store
- StateContext: read/write facade over one StateScope
- StateScopeContext: scope link resolving declared state keys

Only keys declared when a scope is created can be written. Change
notifications raised inside ``StateScope.batch()`` are coalesced into a
single StateChange for the outermost batch.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from sdui.expr.expr_or import ExprOr
from sdui.expr.scope import ScopeContext
from sdui.state.reactive import Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateChange:
    """One (possibly batched) notification from a StateScope."""

    namespace: str
    keys: frozenset[str]
    rebuild: bool = False

    def affects(self, keys: frozenset[str] | None) -> bool:
        if keys is None or self.rebuild:
            return True
        return not self.keys.isdisjoint(keys)


StateListener = Callable[[StateChange], None]


class StateScope:
    """Key/value store for one page or component instance."""

    def __init__(self, namespace: str, initial_state: Mapping[str, Any] | None = None) -> None:
        self.namespace = namespace
        self._values: dict[str, Any] = dict(initial_state or {})
        self._declared = frozenset(self._values)
        self._observers: list[tuple[StateListener, frozenset[str] | None]] = []
        self._idle_listeners: list[Callable[[], None]] = []
        self._batch_depth = 0
        self._pending_keys: set[str] = set()
        self._pending_rebuild = False
        self._disposed = False

    @property
    def declared_keys(self) -> frozenset[str]:
        return self._declared

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def in_batch(self) -> bool:
        return self._batch_depth > 0

    def declares(self, key: str) -> bool:
        return key in self._declared

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def values(self) -> dict[str, Any]:
        return dict(self._values)

    def set(self, key: str, value: Any) -> bool:
        """Write a declared key. Returns ``False`` when the write is rejected."""
        if self._disposed:
            logger.warning("Write to %r on disposed state scope %r ignored", key, self.namespace)
            return False
        if key not in self._declared:
            logger.warning("State key %r is not declared in scope %r", key, self.namespace)
            return False
        if key in self._values and self._values[key] == value:
            return True
        self._values[key] = value
        self._notify(frozenset([key]), rebuild=False)
        return True

    def notify_rebuild(self) -> None:
        """Ask every observer to re-evaluate without changing any value."""
        if not self._disposed:
            self._notify(frozenset(), rebuild=True)

    @contextmanager
    def batch(self) -> Iterator[StateScope]:
        """Coalesce notifications until the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._flush()
                self._run_idle_listeners()

    def observe(self, listener: StateListener, keys: Iterable[str] | None = None) -> Subscription:
        """Call ``listener`` for every change touching ``keys`` (all changes if None)."""
        entry = (listener, frozenset(keys) if keys is not None else None)
        self._observers.append(entry)

        def _cancel() -> None:
            if entry in self._observers:
                self._observers.remove(entry)

        return Subscription(_cancel)

    def on_idle(self, listener: Callable[[], None]) -> Subscription:
        """Call ``listener`` each time the outermost batch has been flushed."""
        self._idle_listeners.append(listener)

        def _cancel() -> None:
            if listener in self._idle_listeners:
                self._idle_listeners.remove(listener)

        return Subscription(_cancel)

    def _run_idle_listeners(self) -> None:
        for listener in list(self._idle_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Idle listener failed in scope %r", self.namespace)

    def _notify(self, keys: frozenset[str], rebuild: bool) -> None:
        self._pending_keys |= keys
        self._pending_rebuild = self._pending_rebuild or rebuild
        if self._batch_depth == 0:
            self._flush()

    def _flush(self) -> None:
        if not self._pending_keys and not self._pending_rebuild:
            return
        change = StateChange(self.namespace, frozenset(self._pending_keys), self._pending_rebuild)
        self._pending_keys = set()
        self._pending_rebuild = False
        for listener, keys in list(self._observers):
            if not change.affects(keys):
                continue
            try:
                listener(change)
            except Exception:
                logger.exception("State observer failed in scope %r", self.namespace)

    def dispose(self) -> None:
        self._disposed = True
        self._observers.clear()
        self._idle_listeners.clear()
        self._pending_keys = set()
        self._pending_rebuild = False

    def __repr__(self) -> str:
        return f"StateScope(namespace={self.namespace!r}, keys={sorted(self._declared)})"


class StateContext:
    """Read/write facade over a StateScope.

    A component's context has ``parent`` set to the enclosing page's
    context; reads and writes of keys the component does not declare are
    delegated upward.
    """

    def __init__(self, scope: StateScope, parent: StateContext | None = None) -> None:
        self.scope = scope
        self.parent = parent

    @property
    def namespace(self) -> str:
        return self.scope.namespace

    @property
    def is_active(self) -> bool:
        return not self.scope.disposed

    def owner_of(self, key: str) -> StateContext | None:
        context: StateContext | None = self
        while context is not None:
            if context.scope.declares(key):
                return context
            context = context.parent
        return None

    def has(self, key: str) -> bool:
        return self.owner_of(key) is not None

    def get(self, key: str, default: Any = None) -> Any:
        owner = self.owner_of(key)
        if owner is None:
            return default
        return owner.scope.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """Write ``key``. Undeclared keys are rejected and state is unchanged."""
        owner = self.owner_of(key)
        if owner is None:
            logger.warning("Rejected write to undeclared state key %r in %r", key, self.namespace)
            return False
        return owner.scope.set(key, value)

    def set_many(self, updates: Mapping[str, Any]) -> dict[str, bool]:
        """Apply each write independently, in order, within one batch."""
        with self.batch():
            return {key: self.set(key, value) for key, value in updates.items()}

    def rebuild(self) -> None:
        self.scope.notify_rebuild()

    @contextmanager
    def batch(self) -> Iterator[StateContext]:
        with self.scope.batch():
            if self.parent is not None:
                with self.parent.batch():
                    yield self
            else:
                yield self

    def values(self) -> dict[str, Any]:
        """Visible state: parent values overlaid by this scope's own."""
        merged = self.parent.values() if self.parent is not None else {}
        merged.update(self.scope.values())
        return merged

    def keys(self) -> frozenset[str]:
        return frozenset(self.values())

    def observe(self, listener: StateListener, keys: Iterable[str] | None = None) -> Subscription:
        return self.scope.observe(listener, keys)

    def __repr__(self) -> str:
        return f"StateContext(namespace={self.namespace!r}, active={self.is_active})"


class StateTree:
    """Session-wide registry of StateScopes keyed by namespace."""

    def __init__(self) -> None:
        self._scopes: dict[str, StateScope] = {}
        self._counter = itertools.count(1)

    def scope(self, namespace: str, initial_state: Mapping[str, Any] | None = None) -> StateScope:
        """Create-or-retrieve the scope for ``namespace``.

        A live scope is returned as is; ``initial_state`` only applies on
        creation.
        """
        existing = self._scopes.get(namespace)
        if existing is not None and not existing.disposed:
            return existing
        created = StateScope(namespace, initial_state)
        self._scopes[namespace] = created
        logger.debug("Created state scope %r", namespace)
        return created

    def context(
        self,
        namespace: str,
        initial_state: Mapping[str, Any] | None = None,
        parent: StateContext | None = None,
    ) -> StateContext:
        return StateContext(self.scope(namespace, initial_state), parent)

    def child_namespace(self, parent_namespace: str, component_id: str) -> str:
        return f"{parent_namespace}/{component_id}#{next(self._counter)}"

    def get(self, namespace: str) -> StateScope | None:
        return self._scopes.get(namespace)

    def namespaces(self) -> list[str]:
        return list(self._scopes)

    def dispose(self, namespace: str) -> None:
        """Dispose ``namespace`` and every component scope nested under it."""
        prefix = f"{namespace}/"
        for name in [n for n in self._scopes if n == namespace or n.startswith(prefix)]:
            self._scopes.pop(name).dispose()
            logger.debug("Disposed state scope %r", name)

    def clear(self) -> None:
        for scope in self._scopes.values():
            scope.dispose()
        self._scopes.clear()


class StateScopeContext(ScopeContext):
    """Scope link resolving declared state keys to their live values.

    ``state`` resolves to the whole visible state map.
    """

    def __init__(
        self,
        state: StateContext,
        variables: Mapping[str, Any] | None = None,
        enclosing: ScopeContext | None = None,
    ) -> None:
        super().__init__(f"state:{state.namespace}", variables, enclosing)
        self.state = state

    def lookup_local(self, key: str) -> tuple[bool, Any]:
        if self.state.has(key):
            return True, self.state.get(key)
        if key == "state":
            return True, self.state.values()
        return super().lookup_local(key)


class ExprObserver:
    """Re-evaluates one bound value whenever state it reads changes.

    Example:
        observer = ExprObserver(ExprOr.from_value("@{count * 2}"), scope, state, seen.append)
        state.set("count", 3)   # seen == [6]
    """

    def __init__(
        self,
        expr: ExprOr[Any],
        scope: ScopeContext,
        state: StateContext,
        callback: Callable[[Any], None],
    ) -> None:
        self.expr = expr
        self.scope = scope
        self.callback = callback
        deps = expr.dependencies
        keys = None if "state" in deps else deps & state.keys()
        self._subscriptions: list[Subscription] = []
        self._scopes: list[StateScope] = []
        self._pending = False
        context: StateContext | None = state
        while context is not None:
            self._scopes.append(context.scope)
            self._subscriptions.append(context.observe(self._on_change, keys))
            self._subscriptions.append(context.scope.on_idle(self._fire_if_settled))
            context = context.parent

    def current(self) -> Any:
        return self.expr.evaluate(self.scope)

    def _on_change(self, change: StateChange) -> None:
        self._pending = True
        self._fire_if_settled()

    def _fire_if_settled(self) -> None:
        # One re-evaluation per batch, even when it spans several scopes
        if not self._pending or any(scope.in_batch for scope in self._scopes):
            return
        self._pending = False
        self.callback(self.current())

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

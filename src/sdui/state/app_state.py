"""
Process-wide app state.

AppState is an explicitly created service (held by the RuntimeContext),
initialized once from the document's ``appState`` descriptors. Misuse
(access before init, unknown key, type mismatch) raises AppStateError
subclasses; those indicate a broken document or a programming error and
are not recovered from.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from sdui.errors import (
    AppStateKeyError,
    AppStateNotInitializedError,
    AppStateTypeError,
    DuplicateStateKeyError,
)
from sdui.expr.scope import ScopeContext
from sdui.state.descriptor import StateDescriptor, parse_descriptors
from sdui.state.reactive import PersistedReactiveValue, ReactiveValue
from sdui.state.storage import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)


class AppState:
    """Registry of one ReactiveValue per declared global state key."""

    def __init__(self) -> None:
        self._values: dict[str, ReactiveValue[Any]] = {}
        self._descriptors: dict[str, StateDescriptor] = {}
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def init(
        self,
        raw: Any,
        store: KeyValueStore | None = None,
        project_id: str = "default",
    ) -> None:
        """Build the registry from raw descriptor JSON.

        Re-initializing disposes the previous values first.

        Raises:
            DuplicateStateKeyError: two descriptors share a key.
            UnknownStateTypeError: a descriptor has an unsupported type.
        """
        if self._initialized:
            self.dispose()

        descriptors = parse_descriptors(raw)
        seen: set[str] = set()
        for descriptor in descriptors:
            if descriptor.key in seen:
                raise DuplicateStateKeyError(descriptor.key)
            seen.add(descriptor.key)

        store = store if store is not None else MemoryStore()
        for descriptor in descriptors:
            self._descriptors[descriptor.key] = descriptor
            self._values[descriptor.key] = _create_value(descriptor, store, project_id)

        self._initialized = True
        logger.debug("App state initialized with %d values", len(self._values))

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise AppStateNotInitializedError()

    def get(self, key: str, expected_type: type | None = None) -> ReactiveValue[Any]:
        """Return the ReactiveValue for ``key``.

        ``expected_type`` checks the current value's type when it is not null.
        """
        self._ensure_initialized()
        value = self._values.get(key)
        if value is None:
            raise AppStateKeyError(key)
        current = value.value
        if expected_type is not None and current is not None:
            if not _is_instance(current, expected_type):
                raise AppStateTypeError(key, expected_type, current)
        return value

    def has(self, key: str) -> bool:
        return self._initialized and key in self._values

    def descriptor(self, key: str) -> StateDescriptor:
        self._ensure_initialized()
        if key not in self._descriptors:
            raise AppStateKeyError(key)
        return self._descriptors[key]

    def value(self, key: str) -> Any:
        return self.get(key).value

    def update(self, key: str, new_value: Any) -> bool:
        """Write ``new_value`` coerced to the declared type.

        Returns whether the value changed.

        Raises:
            AppStateTypeError: ``new_value`` cannot be coerced.
        """
        reactive = self.get(key)
        ok, coerced = self._descriptors[key].accepts(new_value)
        if not ok:
            raise AppStateTypeError(key, _declared_type(self._descriptors[key]), new_value)
        return reactive.update(coerced)

    def stream(self, key: str) -> AsyncIterator[Any]:
        return self.get(key).stream()

    def all(self) -> dict[str, ReactiveValue[Any]]:
        """Read-only snapshot of the registry."""
        self._ensure_initialized()
        return dict(self._values)

    def reset(self) -> None:
        """Restore every value to its declared initial value."""
        self._ensure_initialized()
        for key, descriptor in self._descriptors.items():
            self._values[key].update(descriptor.initial_value)

    def dispose(self) -> None:
        """Close and drop every value. Safe to call repeatedly."""
        for value in self._values.values():
            value.close()
        self._values.clear()
        self._descriptors.clear()
        self._initialized = False


def _create_value(descriptor: StateDescriptor, store: KeyValueStore, project_id: str) -> ReactiveValue[Any]:
    if descriptor.should_persist:
        return PersistedReactiveValue(
            descriptor.initial_value,
            name=descriptor.key,
            project_id=project_id,
            store=store,
            serialize=descriptor.serialize,
            deserialize=descriptor.deserialize,
        )
    return ReactiveValue(descriptor.initial_value, name=descriptor.key)


_DECLARED_TYPES: dict[str, type] = {
    "number": float,
    "string": str,
    "bool": bool,
    "json": dict,
    "list": list,
}


def _declared_type(descriptor: StateDescriptor) -> type:
    return _DECLARED_TYPES[descriptor.type_name]


def _is_instance(value: Any, expected: type) -> bool:
    if expected is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


class AppStateScopeContext(ScopeContext):
    """Scope link exposing app state to expressions.

    ``appState`` resolves to a map holding every value under its key and
    every ReactiveValue under its stream name. Keys and stream names also
    resolve directly.
    """

    def __init__(
        self,
        app_state: AppState,
        variables: Mapping[str, Any] | None = None,
        enclosing: ScopeContext | None = None,
    ) -> None:
        super().__init__("appState", variables, enclosing)
        self.app_state = app_state

    def lookup_local(self, key: str) -> tuple[bool, Any]:
        if not self.app_state.is_initialized:
            return super().lookup_local(key)

        values = self.app_state.all()
        if key == "appState":
            snapshot: dict[str, Any] = {}
            for name, reactive in values.items():
                snapshot[name] = reactive.value
                snapshot[self.app_state.descriptor(name).stream_name] = reactive
            return True, snapshot

        if key in values:
            return True, values[key].value

        for name, reactive in values.items():
            if self.app_state.descriptor(name).stream_name == key:
                return True, reactive

        return super().lookup_local(key)

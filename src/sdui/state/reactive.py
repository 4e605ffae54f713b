"""
Observable values with replay-latest semantics.

A ReactiveValue is the publish/subscribe primitive behind app state:
subscribers receive the current value immediately, then every change.
Publishing is gated on equality, so writing the current value again is a
no-op that notifies nobody.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, TypeVar

from sdui.state.storage import KeyValueStore, app_state_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[Any], None]


class Subscription:
    """Handle returned by ``subscribe``/``observe``. ``cancel()`` is idempotent."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel: Callable[[], None] | None = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def cancel(self) -> None:
        if self._cancel is not None:
            cancel, self._cancel = self._cancel, None
            cancel()


class ReactiveValue(Generic[T]):
    """A value plus a multicast change stream.

    Example:
        counter = ReactiveValue(0)
        seen = []
        counter.subscribe(seen.append)   # seen == [0]
        counter.update(1)                # True, seen == [0, 1]
        counter.update(1)                # False, seen unchanged
    """

    def __init__(self, initial: T, *, name: str = "") -> None:
        self.name = name
        self._value: T = initial
        self._listeners: list[Listener] = []
        self._queues: set[asyncio.Queue[Any]] = set()
        self._closed = False

    @property
    def value(self) -> T:
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    def update(self, new_value: T) -> bool:
        """Set the value. Returns ``False`` and emits nothing if unchanged."""
        if self._closed:
            logger.warning("Update of closed reactive value %r ignored", self.name)
            return False
        if new_value == self._value:
            return False
        self._value = new_value
        self._on_changed(new_value)
        self._emit(new_value)
        return True

    def _on_changed(self, new_value: T) -> None:
        """Hook for subclasses; runs after the value changed and before emission."""

    def _emit(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Listener of %r failed", self.name)
        for queue in self._queues:
            queue.put_nowait(value)

    def subscribe(self, listener: Listener) -> Subscription:
        """Register ``listener``; it is called with the current value right away."""
        self._listeners.append(listener)
        listener(self._value)

        def _cancel() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(_cancel)

    async def stream(self) -> AsyncIterator[T]:
        """Async iteration over the current value and every later change.

        Iteration ends when the value is closed.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue()
        queue.put_nowait(self._value)
        self._queues.add(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            self._queues.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners) + len(self._queues)

    def close(self) -> None:
        """Drop every subscriber and end open streams."""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        for queue in self._queues:
            queue.put_nowait(_CLOSED)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, value={self._value!r})"


_CLOSED = object()


class PersistedReactiveValue(ReactiveValue[T]):
    """A ReactiveValue mirrored into a key/value store.

    The stored value wins over ``initial`` at construction. Every successful
    update writes through under ``"{project_id}_app_state_{name}"``.
    """

    def __init__(
        self,
        initial: T,
        *,
        name: str,
        project_id: str,
        store: KeyValueStore,
        serialize: Callable[[T], str],
        deserialize: Callable[[str], T],
    ) -> None:
        self.storage_key = app_state_key(project_id, name)
        self._store = store
        self._serialize = serialize
        stored = store.get_string(self.storage_key)
        super().__init__(deserialize(stored) if stored is not None else initial, name=name)

    def _on_changed(self, new_value: T) -> None:
        self._store.put_string(self.storage_key, self._serialize(new_value))

    def forget(self) -> None:
        """Remove the persisted copy. The in-memory value is kept."""
        self._store.remove(self.storage_key)

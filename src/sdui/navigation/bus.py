"""
Navigation event bus.

A synchronous multicast channel from action processors to whoever owns
the page stack. The bus also keeps two single-use registries: page args
handed from a navigate call to the page it opens, and result callbacks
waiting for a page to pop with a value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from sdui.navigation.events import (
    ExecuteResultCallbackEvent,
    NavigateEvent,
    NavigationEvent,
    PopEvent,
    PopToEvent,
    ResultCallback,
)
from sdui.state.reactive import Subscription

logger = logging.getLogger(__name__)

NavigationListener = Callable[[NavigationEvent], None]


class NavigationBus:
    """
    Multicast channel of navigation intents.

    Example:
        bus = NavigationBus()
        bus.subscribe(events.append)
        bus.navigate("detail", {"id": 7})
        bus.pop(result="saved")
    """

    def __init__(self) -> None:
        self._listeners: list[NavigationListener] = []
        self._page_args: dict[str, dict[str, Any] | None] = {}
        self._result_callbacks: dict[str, ResultCallback] = {}
        self.history: list[NavigationEvent] = []

    def subscribe(self, listener: NavigationListener) -> Subscription:
        self._listeners.append(listener)

        def _cancel() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(_cancel)

    def publish(self, event: NavigationEvent) -> None:
        logger.debug("Navigation event: %s", event)
        self.history.append(event)
        if not self._listeners:
            logger.warning("Navigation event %s has no subscriber", type(event).__name__)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Navigation listener failed for %s", type(event).__name__)

    # =========================================================================
    # Intents
    # =========================================================================

    def navigate(self, page_id: str, args: dict[str, Any] | None = None, replace: bool = False) -> None:
        if args is not None:
            self._page_args[page_id] = args
        self.publish(NavigateEvent(page_id, args, replace))

    def pop(self, result: Any = None) -> None:
        self.publish(PopEvent(result))

    def pop_to(self, page_id: str, inclusive: bool = False) -> None:
        self.publish(PopToEvent(page_id, inclusive))

    # =========================================================================
    # Single-use registries
    # =========================================================================

    def take_page_args(self, page_id: str) -> dict[str, Any] | None:
        return self._page_args.pop(page_id, None)

    def register_result_callback(self, page_id: str, callback: ResultCallback) -> None:
        if page_id in self._result_callbacks:
            logger.debug("Replacing result callback for %r", page_id)
        self._result_callbacks[page_id] = callback

    def take_result_callback(self, page_id: str) -> ResultCallback | None:
        return self._result_callbacks.pop(page_id, None)

    def execute_result_callback(self, page_id: str, result: Any) -> bool:
        """Emit the callback registered for ``page_id``, consuming it."""
        callback = self.take_result_callback(page_id)
        if callback is None:
            return False
        self.publish(ExecuteResultCallbackEvent(page_id, callback, result))
        return True

    def clear_result_callbacks(self) -> None:
        self._result_callbacks.clear()

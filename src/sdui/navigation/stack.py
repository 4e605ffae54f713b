"""
Page stack ownership.

PageStack is the plain ordered stack. NavHost subscribes it to the
navigation bus, mounts a PageInstance per entry and unmounts entries as
they leave the stack.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sdui.expr.scope import ScopeContext
from sdui.navigation.events import (
    ExecuteResultCallbackEvent,
    NavigateEvent,
    NavigationEvent,
    PopEvent,
    PopToEvent,
)

if TYPE_CHECKING:
    from sdui.runtime.context import RuntimeContext
    from sdui.runtime.page import PageInstance
    from sdui.state.reactive import Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageEntry:
    page_id: str
    args: dict[str, Any] | None = None
    key: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def namespace(self) -> str:
        return f"{self.page_id}@{self.key}"


class PageStack:
    """Ordered page entries, bottom first."""

    def __init__(self) -> None:
        self._entries: list[PageEntry] = []

    @property
    def entries(self) -> list[PageEntry]:
        return list(self._entries)

    @property
    def page_ids(self) -> list[str]:
        return [entry.page_id for entry in self._entries]

    @property
    def top(self) -> PageEntry | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, entry: PageEntry) -> None:
        self._entries.append(entry)

    def replace(self, entry: PageEntry) -> PageEntry | None:
        removed = self._entries.pop() if self._entries else None
        self._entries.append(entry)
        return removed

    def pop(self) -> PageEntry | None:
        """Remove the top entry. A stack of one is never popped."""
        if len(self._entries) <= 1:
            return None
        return self._entries.pop()

    def pop_to(self, page_id: str, inclusive: bool = False) -> list[PageEntry]:
        """Remove entries above the last ``page_id`` (and it too if inclusive).

        An unknown ``page_id`` leaves the stack unchanged.
        """
        index = next(
            (i for i in range(len(self._entries) - 1, -1, -1) if self._entries[i].page_id == page_id),
            -1,
        )
        if index == -1:
            return []
        target = index if inclusive else index + 1
        removed = self._entries[target:]
        del self._entries[target:]
        return list(reversed(removed))


class NavHost:
    """Owns the page stack and reacts to navigation intents."""

    def __init__(self, runtime: RuntimeContext) -> None:
        self.runtime = runtime
        self.stack = PageStack()
        self._pages: dict[str, PageInstance] = {}
        self._subscription: Subscription | None = None

    def start(self, page_id: str | None = None, args: dict[str, Any] | None = None) -> PageInstance:
        """Subscribe to the bus and mount the start page."""
        start = page_id or self.runtime.config.initial_route
        if start is None:
            raise ValueError("No start page given and the document has no initialRoute")
        if self._subscription is None:
            self._subscription = self.runtime.navigation.subscribe(self.handle)
        entry = PageEntry(start, args)
        self.stack.push(entry)
        return self._mount(entry)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        for entry in reversed(self.stack.entries):
            self._unmount(entry)

    @property
    def current(self) -> PageInstance | None:
        top = self.stack.top
        return self._pages.get(top.key) if top else None

    def page(self, entry: PageEntry) -> PageInstance | None:
        return self._pages.get(entry.key)

    def handle(self, event: NavigationEvent) -> None:
        if isinstance(event, NavigateEvent):
            self._navigate(event)
        elif isinstance(event, PopEvent):
            self._pop(event)
        elif isinstance(event, PopToEvent):
            for entry in self.stack.pop_to(event.page_id, event.inclusive):
                self._unmount(entry)
        elif isinstance(event, ExecuteResultCallbackEvent):
            self._run_result_callback(event)

    def _navigate(self, event: NavigateEvent) -> None:
        if self.runtime.config.get_page(event.page_id) is None:
            logger.warning("Cannot navigate to unknown page %r", event.page_id)
            return
        handed = self.runtime.navigation.take_page_args(event.page_id)
        entry = PageEntry(event.page_id, handed if handed is not None else event.args)
        if event.replace:
            removed = self.stack.replace(entry)
            if removed is not None:
                self._unmount(removed)
        else:
            self.stack.push(entry)
        self._mount(entry)

    def _pop(self, event: PopEvent) -> None:
        popped = self.stack.pop()
        if popped is None:
            logger.debug("Pop ignored on a stack of one")
            return
        self._unmount(popped)
        if event.result is not None:
            self.runtime.navigation.execute_result_callback(popped.page_id, event.result)

    def _run_result_callback(self, event: ExecuteResultCallbackEvent) -> None:
        callback = event.callback
        scope = (callback.scope or ScopeContext("root")).child("result", {"result": event.result})
        self.runtime.dispatcher.spawn(callback.flow, scope, callback.state)

    def _mount(self, entry: PageEntry) -> PageInstance:
        page = self.runtime.open_page(entry.page_id, entry.args, namespace=entry.namespace)
        self._pages[entry.key] = page
        return page

    def _unmount(self, entry: PageEntry) -> None:
        page = self._pages.pop(entry.key, None)
        if page is not None:
            page.unmount()

"""
Navigation intents published by actions and consumed by the page stack.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sdui.expr.scope import ScopeContext

if TYPE_CHECKING:
    from sdui.actions.base import ActionFlow
    from sdui.state.state_tree import StateContext


@dataclass(frozen=True)
class ResultCallback:
    """Flow to run with ``result`` bound when a page pops with a value."""

    flow: ActionFlow
    scope: ScopeContext | None = None
    state: StateContext | None = None


@dataclass(frozen=True)
class NavigateEvent:
    page_id: str
    args: dict[str, Any] | None = None
    replace: bool = False


@dataclass(frozen=True)
class PopEvent:
    result: Any = None


@dataclass(frozen=True)
class PopToEvent:
    page_id: str
    inclusive: bool = False


@dataclass(frozen=True)
class ExecuteResultCallbackEvent:
    page_id: str
    callback: ResultCallback
    result: Any = field(default=None)


NavigationEvent = NavigateEvent | PopEvent | PopToEvent | ExecuteResultCallbackEvent

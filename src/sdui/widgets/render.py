"""
Render-time types.

Rendering turns a VirtualNode tree into a host-agnostic RenderedNode
snapshot: evaluated props, visibility, rendered slots and event triggers.
A host toolkit paints the snapshot; the core never does.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from sdui.actions.base import ActionFlow
from sdui.errors import DispatcherError
from sdui.expr.expr_or import deep_evaluate, evaluate_value
from sdui.expr.scope import ScopeContext

if TYPE_CHECKING:
    from sdui.runtime.context import RuntimeContext
    from sdui.state.state_tree import StateContext


@dataclass(frozen=True)
class RenderPayload:
    """Everything a node needs to render: the scope chain plus services."""

    scope: ScopeContext
    state: StateContext | None = None
    runtime: RuntimeContext | None = None

    def eval(self, raw: Any, as_type: type | None = None, default: Any = None) -> Any:
        value = evaluate_value(raw, self.scope, as_type)
        return default if value is None else value

    def deep(self, raw: Any) -> Any:
        return deep_evaluate(raw, self.scope)

    def with_variables(self, name: str, variables: dict[str, Any]) -> RenderPayload:
        return replace(self, scope=self.scope.child(name, variables))

    def with_scope(self, scope: ScopeContext, state: StateContext | None = None) -> RenderPayload:
        return replace(self, scope=scope, state=state if state is not None else self.state)


@dataclass(frozen=True)
class EventTrigger:
    """Runs one event's flow with the scope captured at render time."""

    flow: ActionFlow
    scope: ScopeContext
    state: StateContext | None = None
    runtime: RuntimeContext | None = None

    async def __call__(self) -> Any:
        if self.runtime is None:
            raise DispatcherError("Cannot trigger an event rendered without a runtime")
        return await self.runtime.dispatcher.execute(self.flow, self.scope, self.state)


@dataclass
class RenderedNode:
    type: str
    ref_name: str | None = None
    props: dict[str, Any] = field(default_factory=dict)
    visible: bool = True
    slots: dict[str, list[RenderedNode]] = field(default_factory=dict)
    events: dict[str, EventTrigger] = field(default_factory=dict)
    error: str | None = None

    def children(self, slot: str = "children") -> list[RenderedNode]:
        return self.slots.get(slot, [])

    def walk(self) -> Iterator[RenderedNode]:
        yield self
        for group in self.slots.values():
            for child in group:
                yield from child.walk()

    def find(self, type_key: str) -> list[RenderedNode]:
        return [node for node in self.walk() if node.type == type_key]

    def find_ref(self, ref_name: str) -> RenderedNode | None:
        return next((node for node in self.walk() if node.ref_name == ref_name), None)

    @property
    def errors(self) -> list[RenderedNode]:
        return [node for node in self.walk() if node.error is not None]

    async def trigger(self, event: str = "onClick") -> Any:
        trigger = self.events.get(event)
        if trigger is None:
            raise KeyError(f"{self.type} has no {event} event")
        return await trigger()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.ref_name:
            data["refName"] = self.ref_name
        if self.props:
            data["props"] = self.props
        if not self.visible:
            data["visible"] = False
        if self.events:
            data["events"] = sorted(self.events)
        if self.error:
            data["error"] = self.error
        if self.slots:
            data["slots"] = {k: [c.to_dict() for c in v] for k, v in self.slots.items()}
        return data

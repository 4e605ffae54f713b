"""
Virtual node tree.

A VirtualNode is built once per page activation from a NodeData
descriptor. Leaves own no children; composites own named slots of child
nodes. Parents are held weakly by children, so the tree stays acyclic in
ownership.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Iterator, Mapping
from typing import Any

from sdui.actions.base import ActionFlow, is_flow_value
from sdui.specs.node import NodeData
from sdui.widgets.render import EventTrigger, RenderedNode, RenderPayload

logger = logging.getLogger(__name__)


def _split_props(raw: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, ActionFlow]]:
    """Separate action-flow props from plain props."""
    props: dict[str, Any] = {}
    events: dict[str, ActionFlow] = {}
    for name, value in raw.items():
        if is_flow_value(value):
            flow = ActionFlow.from_json(value)
            if flow is not None:
                events[name] = flow
        else:
            props[name] = value
    return props, events


class VirtualNode:
    """Base of every node kind."""

    def __init__(self, data: NodeData, parent: VirtualNode | None = None) -> None:
        self.data = data
        self.type = data.type
        self.ref_name = data.ref_name
        self.props, self.events = _split_props(data.props)
        self.common_props: dict[str, Any] = dict(data.common_props or {})
        on_click = self.common_props.get("onClick")
        if is_flow_value(on_click):
            flow = ActionFlow.from_json(on_click)
            if flow is not None:
                self.events.setdefault("onClick", flow)
        self._parent: weakref.ref[VirtualNode] | None = None
        self.parent = parent

    @property
    def parent(self) -> VirtualNode | None:
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, node: VirtualNode | None) -> None:
        self._parent = weakref.ref(node) if node is not None else None

    @property
    def slots(self) -> dict[str, list[VirtualNode]]:
        return {}

    def walk(self) -> Iterator[VirtualNode]:
        yield self
        for group in self.slots.values():
            for child in group:
                yield from child.walk()

    def is_visible(self, payload: RenderPayload) -> bool:
        visibility = self.common_props.get("visibility")
        if visibility is None:
            return True
        return bool(payload.eval(visibility, bool, True))

    def evaluated_props(self, payload: RenderPayload) -> dict[str, Any]:
        return {name: payload.deep(value) for name, value in self.props.items()}

    def ref_value(self, payload: RenderPayload) -> Any:
        """Object published under ``ref_name`` for siblings and descendants."""
        return self.evaluated_props(payload)

    def render(self, payload: RenderPayload) -> RenderedNode:
        visible = self.is_visible(payload)
        rendered = RenderedNode(
            type=self.type,
            ref_name=self.ref_name,
            props=self.evaluated_props(payload) if visible else {},
            visible=visible,
            events=self.bind_events(payload),
        )
        if visible:
            rendered.slots = self.render_slots(payload)
        return rendered

    def bind_events(self, payload: RenderPayload) -> dict[str, EventTrigger]:
        return {
            name: EventTrigger(flow, payload.scope, payload.state, payload.runtime)
            for name, flow in self.events.items()
        }

    def render_slots(self, payload: RenderPayload) -> dict[str, list[RenderedNode]]:
        return {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type!r})"


class LeafNode(VirtualNode):
    """A node without children (text, image, icon, ...)."""


class CompositeNode(VirtualNode):
    """A node owning named slots of children."""

    def __init__(
        self,
        data: NodeData,
        parent: VirtualNode | None = None,
        slots: dict[str, list[VirtualNode]] | None = None,
    ) -> None:
        super().__init__(data, parent)
        self._slots: dict[str, list[VirtualNode]] = slots or {}
        for group in self._slots.values():
            for child in group:
                child.parent = self

    @property
    def slots(self) -> dict[str, list[VirtualNode]]:
        return self._slots

    def children(self, slot: str = "children") -> list[VirtualNode]:
        return self._slots.get(slot, [])

    def scope_for_children(self, payload: RenderPayload) -> RenderPayload:
        if self.ref_name is None:
            return payload
        return payload.with_variables(f"ref:{self.ref_name}", {self.ref_name: self.ref_value(payload)})

    def render_slots(self, payload: RenderPayload) -> dict[str, list[RenderedNode]]:
        inner = self.scope_for_children(payload)
        return {name: render_children(group, inner) for name, group in self._slots.items()}


def render_children(children: list[VirtualNode], payload: RenderPayload) -> list[RenderedNode]:
    """Render siblings in order; a sibling's ``ref_name`` is visible to later ones."""
    rendered: list[RenderedNode] = []
    for child in children:
        rendered.append(child.render(payload))
        if child.ref_name is not None:
            payload = payload.with_variables(
                f"ref:{child.ref_name}", {child.ref_name: child.ref_value(payload)}
            )
    return rendered


class ErrorNode(LeafNode):
    """Placeholder for a descriptor that could not be built."""

    def __init__(self, data: NodeData, message: str, parent: VirtualNode | None = None) -> None:
        super().__init__(data, parent)
        self.message = message

    def render(self, payload: RenderPayload) -> RenderedNode:
        return RenderedNode(type=self.type, ref_name=self.ref_name, error=self.message)

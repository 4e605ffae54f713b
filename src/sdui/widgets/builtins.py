"""
Built-in widget kinds.

Most widgets are generic leaves or composites; painting them is the
host's job. List views, tab views and component instances change the
scope their children render in, so they get dedicated node classes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sdui.errors import WidgetBuildError
from sdui.expr.coerce import to_int, to_list
from sdui.expr.scope import ScopeContext
from sdui.specs.node import NodeData
from sdui.state.state_tree import StateContext, StateScopeContext
from sdui.widgets.node import CompositeNode, ErrorNode, LeafNode, VirtualNode, render_children
from sdui.widgets.registry import WidgetRegistry
from sdui.widgets.render import RenderedNode, RenderPayload

logger = logging.getLogger(__name__)

LEAF_TYPES = (
    "digia/text",
    "digia/image",
    "digia/icon",
    "digia/button",
    "digia/textField",
    "digia/lottie",
    "digia/videoPlayer",
    "digia/sizedBox",
    "digia/divider",
)

COMPOSITE_TYPES = (
    "digia/column",
    "digia/row",
    "digia/stack",
    "digia/container",
    "digia/wrap",
    "digia/scaffold",
    "digia/opacity",
)


def leaf_builder(data: NodeData, parent: VirtualNode | None, registry: WidgetRegistry) -> VirtualNode:
    return LeafNode(data, parent)


def composite_builder(data: NodeData, parent: VirtualNode | None, registry: WidgetRegistry) -> VirtualNode:
    return CompositeNode(data, parent, registry.build_slots(data))


# =============================================================================
# List view
# =============================================================================


class ListViewNode(CompositeNode):
    """
    Renders its ``children`` slot once per item of ``dataSource``.

    Each pass binds ``currentItem`` and ``index`` (and the node's
    ``ref_name`` to both).
    """

    def items(self, payload: RenderPayload) -> list[Any]:
        return to_list(payload.eval(self.props.get("dataSource"))) or []

    def evaluated_props(self, payload: RenderPayload) -> dict[str, Any]:
        props = {k: payload.deep(v) for k, v in self.props.items() if k != "dataSource"}
        props["itemCount"] = len(self.items(payload))
        return props

    def render_slots(self, payload: RenderPayload) -> dict[str, list[RenderedNode]]:
        template = self.children()
        rendered: list[RenderedNode] = []
        for index, item in enumerate(self.items(payload)):
            variables: dict[str, Any] = {"currentItem": item, "index": index}
            if self.ref_name:
                variables[self.ref_name] = {"currentItem": item, "index": index}
            rendered.extend(render_children(template, payload.with_variables("listItem", variables)))
        return {"children": rendered}


# =============================================================================
# Tab view
# =============================================================================


@dataclass
class TabViewController:
    """Selection state of one tab view."""

    tabs: list[Any]
    initial_index: int = 0
    current_index: int = 0

    @property
    def length(self) -> int:
        return len(self.tabs)

    def animate_to(self, index: int) -> bool:
        if 0 <= index < self.length:
            self.current_index = index
            return True
        return False

    def summary(self) -> dict[str, Any]:
        return {
            "tabs": list(self.tabs),
            "length": self.length,
            "initialIndex": self.initial_index,
            "currentIndex": self.current_index,
        }


class TabViewNode(CompositeNode):
    """
    Owns a ``tabs`` slot. The tab list comes from the ``tabs`` prop, or is
    one entry per child of the slot when the prop is absent.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.controller: TabViewController | None = None

    def get_controller(self, payload: RenderPayload) -> TabViewController:
        tabs = to_list(payload.eval(self.props.get("tabs")))
        if tabs is None:
            tabs = list(range(len(self.children("tabs"))))
        initial = to_int(payload.eval(self.props.get("initialIndex"))) or 0
        initial = max(0, min(initial, len(tabs) - 1)) if tabs else 0
        if self.controller is None:
            self.controller = TabViewController(tabs, initial, initial)
        else:
            self.controller.tabs = tabs
            self.controller.initial_index = initial
            if self.controller.current_index >= len(tabs):
                self.controller.current_index = initial
        return self.controller

    def ref_value(self, payload: RenderPayload) -> Any:
        return self.get_controller(payload).summary()

    def evaluated_props(self, payload: RenderPayload) -> dict[str, Any]:
        props = {k: payload.deep(v) for k, v in self.props.items()}
        props["currentIndex"] = self.get_controller(payload).current_index
        return props

    def render_slots(self, payload: RenderPayload) -> dict[str, list[RenderedNode]]:
        controller = self.get_controller(payload)
        inner = self.scope_for_children(payload)
        slots: dict[str, list[RenderedNode]] = {}
        for name, group in self.slots.items():
            if name != "tabs":
                slots[name] = render_children(group, inner)
                continue
            rendered = []
            for index, child in enumerate(group):
                item = controller.tabs[index] if index < controller.length else None
                tab_payload = inner.with_variables("tab", {"currentItem": item, "index": index})
                rendered.append(child.render(tab_payload))
            slots[name] = rendered
        return slots


# =============================================================================
# Component instance
# =============================================================================


class ComponentNode(LeafNode):
    """
    Instance of a component definition (``componentId`` + ``args``).

    The component's root is built on first render. Each instance gets its
    own state scope nested under the enclosing page's namespace.
    """

    def __init__(self, data: NodeData, parent: VirtualNode | None = None) -> None:
        super().__init__(data, parent)
        self.component_id = self.props.get("componentId")
        self._root: VirtualNode | None = None
        self._state: StateContext | None = None

    def render(self, payload: RenderPayload) -> RenderedNode:
        runtime = payload.runtime
        component = runtime.config.get_component(self.component_id) if runtime else None
        if runtime is None or component is None:
            logger.warning("Unknown component: %s", self.component_id)
            return ErrorNode(self.data, f"Unknown component: {self.component_id}").render(payload)

        if not self.is_visible(payload):
            return RenderedNode(type=self.type, ref_name=self.ref_name, visible=False)

        if self._root is None:
            if component.root is None:
                return RenderedNode(type=self.type, ref_name=self.ref_name, props={"componentId": self.component_id})
            self._root = runtime.registry.build(component.root, self)

        args = component.resolve_args(payload.deep(self.props.get("args")) or {})
        state = self._state_context(payload, component.initial_state())
        # Args shadow state, as page args do
        enclosing = StateScopeContext(state, enclosing=payload.scope) if state else payload.scope
        scope = ScopeContext("component", args, enclosing=enclosing)
        inner = payload.with_scope(scope, state)

        return RenderedNode(
            type=self.type,
            ref_name=self.ref_name,
            props={"componentId": self.component_id, "args": args},
            events=self.bind_events(payload),
            slots={"root": [self._root.render(inner)]},
        )

    def _state_context(self, payload: RenderPayload, initial: dict[str, Any]) -> StateContext | None:
        if not initial:
            return None
        if self._state is not None and self._state.is_active:
            return self._state
        assert payload.runtime is not None
        parent_ns = payload.state.namespace if payload.state else "global"
        namespace = payload.runtime.state_tree.child_namespace(parent_ns, str(self.component_id))
        self._state = payload.runtime.state_tree.context(namespace, initial, parent=payload.state)
        return self._state


def component_builder(data: NodeData, parent: VirtualNode | None, registry: WidgetRegistry) -> VirtualNode:
    if not isinstance(data.props.get("componentId"), str):
        raise WidgetBuildError("digia/component requires a componentId")
    return ComponentNode(data, parent)


def register_builtin_widgets(registry: WidgetRegistry) -> WidgetRegistry:
    for type_key in LEAF_TYPES:
        registry.register(type_key, leaf_builder)
    for type_key in COMPOSITE_TYPES:
        registry.register(type_key, composite_builder)
    registry.register(
        "digia/listView", lambda data, parent, reg: ListViewNode(data, parent, reg.build_slots(data))
    )
    registry.register(
        "digia/tabView", lambda data, parent, reg: TabViewNode(data, parent, reg.build_slots(data))
    )
    registry.register("digia/component", component_builder)
    return registry

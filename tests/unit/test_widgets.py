"""Tests for widget building and rendering."""

from __future__ import annotations

from typing import Any

import pytest

from sdui.runtime.context import RuntimeContext
from sdui.specs.config import AppConfig
from sdui.specs.node import NodeData
from sdui.widgets.builtins import ComponentNode, TabViewNode, register_builtin_widgets
from sdui.widgets.node import CompositeNode, ErrorNode, VirtualNode
from sdui.widgets.registry import WidgetRegistry
from sdui.widgets.render import RenderPayload


def text(value: str, **extra: Any) -> dict[str, Any]:
    return {"type": "digia/text", "props": {"text": value}, **extra}


def column(*children: dict[str, Any], **extra: Any) -> dict[str, Any]:
    return {"type": "digia/column", "childGroups": {"children": list(children)}, **extra}


def texts(rendered: Any) -> list[str]:
    return [node.props["text"] for node in rendered.find("digia/text") if "text" in node.props]


@pytest.fixture
def registry() -> WidgetRegistry:
    return register_builtin_widgets(WidgetRegistry())


def payload_for(runtime: RuntimeContext, **variables: Any) -> RenderPayload:
    return RenderPayload(runtime.root_scope().child("test", variables), None, runtime)


# =============================================================================
# Building
# =============================================================================


class TestBuilding:
    def test_builtin_types_registered(self, registry: WidgetRegistry) -> None:
        assert "digia/text" in registry
        assert "digia/listView" in registry
        assert "digia/component" in registry
        assert registry.types() == sorted(registry.types())

    def test_unknown_type_is_error_node_in_place(self, registry: WidgetRegistry) -> None:
        root = registry.build(column(text("a"), {"type": "digia/doesNotExist"}, text("c")))
        assert isinstance(root, CompositeNode)
        children = root.children()
        assert isinstance(children[1], ErrorNode)
        assert children[1].message == "Unknown widget type: digia/doesNotExist"
        assert [c.type for c in children] == ["digia/text", "digia/doesNotExist", "digia/text"]

    @pytest.mark.parametrize(
        ("descriptor", "message"),
        [
            ({"props": {}}, "Widget descriptor has no type"),
            ({"type": "digia/text", "props": ["a"]}, "props must be an object"),
            ({"type": "digia/column", "childGroups": {"children": "a"}}, "childGroups must map slot names to lists"),
            ("digia/text", "Widget descriptor must be an object"),
        ],
    )
    def test_malformed_descriptor_is_error_node_in_place(
        self, registry: WidgetRegistry, descriptor: Any, message: str
    ) -> None:
        root = registry.build(column(text("a"), descriptor, text("c")))
        assert isinstance(root, CompositeNode)
        children = root.children()
        assert isinstance(children[1], ErrorNode)
        assert children[1].message == message
        assert [c.type for c in children[::2]] == ["digia/text", "digia/text"]

    def test_malformed_descriptor_keeps_document_loadable(self, document: dict[str, Any]) -> None:
        children = document["pages"]["home"]["layout"]["root"]["childGroups"]["children"]
        children.append({"props": {}})
        runtime = RuntimeContext.create(AppConfig.from_dict(document))
        rendered = runtime.open_page("home").render()
        assert texts(rendered) == ["x is 0", "x is 0"]
        assert [node.error for node in rendered.errors] == ["Widget descriptor has no type"]

    def test_failing_builder_is_error_node(self, registry: WidgetRegistry) -> None:
        def explode(data: NodeData, parent: VirtualNode | None, reg: WidgetRegistry) -> VirtualNode:
            raise RuntimeError("nope")

        registry.register("custom/boom", explode)
        node = registry.build({"type": "custom/boom"})
        assert isinstance(node, ErrorNode)
        assert node.message == "Failed to build custom/boom: nope"

    def test_component_requires_id(self, registry: WidgetRegistry) -> None:
        node = registry.build({"type": "digia/component", "props": {}})
        assert isinstance(node, ErrorNode)
        assert "componentId" in node.message

    def test_children_know_parent(self, registry: WidgetRegistry) -> None:
        root = registry.build(column(text("a")))
        assert isinstance(root, CompositeNode)
        child = root.children()[0]
        assert child.parent is root

    def test_flow_props_become_events(self, registry: WidgetRegistry) -> None:
        node = registry.build(
            {
                "type": "digia/button",
                "props": {"text": "Go", "onClick": {"actions": [{"type": "Action.pop"}]}},
            }
        )
        assert set(node.events) == {"onClick"}
        assert "onClick" not in node.props


# =============================================================================
# Rendering
# =============================================================================


class TestRendering:
    def test_page_render_and_sibling_ref(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home")
        assert texts(page.render()) == ["x is 0", "x is 0"]
        page.state.set("x", 3)
        assert texts(page.render()) == ["x is 3", "x is 3"]

    def test_error_node_renders_in_place(self, runtime: RuntimeContext, registry: WidgetRegistry) -> None:
        root = registry.build(column(text("a"), {"type": "digia/doesNotExist"}, text("c")))
        rendered = root.render(payload_for(runtime))
        assert [c.error for c in rendered.children()] == [None, "Unknown widget type: digia/doesNotExist", None]
        assert len(rendered.errors) == 1

    def test_visibility(self, runtime: RuntimeContext, registry: WidgetRegistry) -> None:
        page = runtime.open_page("home", namespace="home@vis")
        root = registry.build(column(text("inner"), commonProps={"visibility": "@{x > 0}"}))
        hidden = root.render(page.payload())
        assert hidden.visible is False
        assert hidden.slots == {}
        page.state.set("x", 1)
        shown = root.render(page.payload())
        assert shown.visible is True
        assert texts(shown) == ["inner"]

    def test_list_view(self, runtime: RuntimeContext, registry: WidgetRegistry) -> None:
        root = registry.build(
            {
                "type": "digia/listView",
                "refName": "rows",
                "props": {"dataSource": "@{items}"},
                "childGroups": {"children": [text("@{index}: @{currentItem} @{rows.index}")]},
            }
        )
        rendered = root.render(payload_for(runtime, items=["a", "b"]))
        assert rendered.props == {"itemCount": 2}
        assert texts(rendered) == ["0: a 0", "1: b 1"]

    def test_list_view_without_items(self, runtime: RuntimeContext, registry: WidgetRegistry) -> None:
        root = registry.build({"type": "digia/listView", "childGroups": {"children": [text("x")]}})
        rendered = root.render(payload_for(runtime))
        assert rendered.children() == []
        assert rendered.props["itemCount"] == 0

    def test_tab_view(self, runtime: RuntimeContext, registry: WidgetRegistry) -> None:
        root = registry.build(
            column(
                {
                    "type": "digia/tabView",
                    "refName": "tv",
                    "props": {"tabs": ["A", "B"], "initialIndex": 5},
                    "childGroups": {"tabs": [text("@{currentItem}"), text("@{index}")]},
                },
                text("@{tv.length} @{tv.currentIndex}"),
            )
        )
        rendered = root.render(payload_for(runtime))
        tab_view = rendered.children()[0]
        assert tab_view.props["currentIndex"] == 1
        assert [c.props["text"] for c in tab_view.children("tabs")] == ["A", 1]
        assert rendered.children()[1].props["text"] == "2 1"

        node = root.children()[0]
        assert isinstance(node, TabViewNode)
        assert node.controller is not None
        assert node.controller.animate_to(0) is True
        assert node.controller.animate_to(3) is False
        assert root.render(payload_for(runtime)).children()[1].props["text"] == "2 0"

    @pytest.mark.asyncio
    async def test_event_trigger_runs_flow(self, runtime: RuntimeContext, registry: WidgetRegistry) -> None:
        page = runtime.open_page("home", namespace="home@evt")
        root = registry.build(
            {
                "type": "digia/button",
                "props": {
                    "text": "+",
                    "onClick": {
                        "actions": [{"type": "Action.setState", "data": {"state": {"x": "@{x + 1}"}}}]
                    },
                },
            }
        )
        rendered = root.render(page.payload())
        await rendered.trigger()
        await rendered.trigger()
        assert page.state.get("x") == 2
        with pytest.raises(KeyError):
            await rendered.trigger("onLongPress")

    def test_to_dict(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home", namespace="home@dict")
        assert page.render().to_dict() == {
            "type": "digia/column",
            "slots": {
                "children": [
                    {"type": "digia/text", "refName": "title", "props": {"text": "x is 0"}},
                    {"type": "digia/text", "props": {"text": "x is 0"}},
                ]
            },
        }

    def test_page_without_layout(self, runtime: RuntimeContext) -> None:
        assert runtime.open_page("list").render().to_dict() == {"type": "page", "props": {"pageId": "list"}}


# =============================================================================
# Components
# =============================================================================


STEPPER = {
    "initStateDefs": {"count": {"type": "number", "defaultValue": 0}},
    "layout": {
        "root": {
            "type": "digia/button",
            "props": {
                "text": "@{count}",
                "onClick": {
                    "actions": [
                        {
                            "type": "Action.setState",
                            "data": {"state": {"count": "@{count + 1}", "x": "@{x + 10}"}},
                        }
                    ]
                },
            },
        }
    },
}


@pytest.fixture
def component_runtime(document: dict[str, Any]) -> RuntimeContext:
    document["components"]["stepper"] = STEPPER
    document["components"]["echo"] = {
        "argDefs": {"x": {"type": "string"}},
        "initStateDefs": {"count": {"type": "number", "defaultValue": 0}},
        "layout": {"root": {"type": "digia/text", "props": {"text": "@{x}"}}},
    }
    document["components"]["echoPlain"] = {
        "argDefs": {"x": {"type": "string"}},
        "layout": {"root": {"type": "digia/text", "props": {"text": "@{x}"}}},
    }
    return RuntimeContext.create(AppConfig.from_dict(document))


class TestComponents:
    def test_args_and_state(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home", namespace="home@c1")
        node = runtime.registry.build(
            {"type": "digia/component", "props": {"componentId": "counter", "args": {"label": "Clicks @{x}"}}}
        )
        rendered = node.render(page.payload())
        assert rendered.props == {"componentId": "counter", "args": {"label": "Clicks 0"}}
        assert rendered.children("root")[0].props["text"] == "Clicks 0: 0"

    def test_default_args(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home", namespace="home@c2")
        node = runtime.registry.build({"type": "digia/component", "props": {"componentId": "counter"}})
        assert node.render(page.payload()).children("root")[0].props["text"] == "Count: 0"

    def test_state_nested_under_page(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home", namespace="home@c3")
        first = runtime.registry.build({"type": "digia/component", "props": {"componentId": "counter"}})
        second = runtime.registry.build({"type": "digia/component", "props": {"componentId": "counter"}})
        first.render(page.payload())
        second.render(page.payload())
        nested = [n for n in runtime.state_tree.namespaces() if n.startswith("home@c3/counter#")]
        assert len(nested) == 2

        page.unmount()
        assert not any(n.startswith("home@c3") for n in runtime.state_tree.namespaces())

    def test_state_survives_rerender(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home", namespace="home@c4")
        node = runtime.registry.build({"type": "digia/component", "props": {"componentId": "counter"}})
        node.render(page.payload())
        node.render(page.payload())
        assert len([n for n in runtime.state_tree.namespaces() if n.startswith("home@c4/")]) == 1

    @pytest.mark.asyncio
    async def test_writes_reach_own_and_page_state(self, component_runtime: RuntimeContext) -> None:
        page = component_runtime.open_page("home", namespace="home@c5")
        node = component_runtime.registry.build({"type": "digia/component", "props": {"componentId": "stepper"}})
        assert isinstance(node, ComponentNode)
        button = node.render(page.payload()).children("root")[0]
        await button.trigger()
        assert page.state.get("x") == 10
        assert node.render(page.payload()).children("root")[0].props["text"] == 1

    @pytest.mark.parametrize("component_id", ["echo", "echoPlain"])
    def test_args_shadow_page_state(self, component_runtime: RuntimeContext, component_id: str) -> None:
        page = component_runtime.open_page("home", namespace=f"home@{component_id}")
        node = component_runtime.registry.build(
            {"type": "digia/component", "props": {"componentId": component_id, "args": {"x": "passed"}}}
        )
        assert node.render(page.payload()).children("root")[0].props["text"] == "passed"

    def test_unknown_component(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home", namespace="home@c6")
        node = runtime.registry.build({"type": "digia/component", "props": {"componentId": "nope"}})
        assert node.render(page.payload()).error == "Unknown component: nope"

    def test_hidden_component(self, runtime: RuntimeContext) -> None:
        page = runtime.open_page("home", namespace="home@c7")
        node = runtime.registry.build(
            {
                "type": "digia/component",
                "props": {"componentId": "counter"},
                "commonProps": {"visibility": False},
            }
        )
        rendered = node.render(page.payload())
        assert rendered.visible is False
        assert rendered.slots == {}

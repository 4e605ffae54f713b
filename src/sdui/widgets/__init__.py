"""
Widgets: the virtual node tree, its builder registry and render snapshots.
"""

from sdui.widgets.builtins import (
    ComponentNode,
    ListViewNode,
    TabViewController,
    TabViewNode,
    register_builtin_widgets,
)
from sdui.widgets.node import CompositeNode, ErrorNode, LeafNode, VirtualNode, render_children
from sdui.widgets.registry import WidgetRegistry
from sdui.widgets.render import EventTrigger, RenderedNode, RenderPayload

__all__ = [
    "ComponentNode",
    "CompositeNode",
    "ErrorNode",
    "EventTrigger",
    "LeafNode",
    "ListViewNode",
    "RenderPayload",
    "RenderedNode",
    "TabViewController",
    "TabViewNode",
    "VirtualNode",
    "WidgetRegistry",
    "register_builtin_widgets",
    "render_children",
]

"""
Widget builder registry.

Maps a widget type key to a builder ``(data, parent, registry) -> VirtualNode``.
Building never raises for bad descriptors: unknown types and failing
builders both yield an ErrorNode in place, so sibling nodes and indices
are unaffected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from sdui.specs.node import NodeData
from sdui.widgets.node import ErrorNode, VirtualNode

logger = logging.getLogger(__name__)

WidgetBuilder = Callable[[NodeData, VirtualNode | None, "WidgetRegistry"], VirtualNode]


class WidgetRegistry:
    """
    Type key to builder table.

    Example:
        registry = WidgetRegistry()
        register_builtin_widgets(registry)
        root = registry.build(page.root)
    """

    def __init__(self) -> None:
        self._builders: dict[str, WidgetBuilder] = {}

    def register(self, type_key: str, builder: WidgetBuilder) -> None:
        if type_key in self._builders:
            logger.debug("Replacing builder for %s", type_key)
        self._builders[type_key] = builder

    def lookup(self, type_key: str) -> WidgetBuilder | None:
        return self._builders.get(type_key)

    def types(self) -> list[str]:
        return sorted(self._builders)

    def __contains__(self, type_key: str) -> bool:
        return type_key in self._builders

    def build(self, data: NodeData | dict[str, Any], parent: VirtualNode | None = None) -> VirtualNode:
        if not isinstance(data, NodeData):
            data = NodeData.model_validate(data)
        if data.invalid is not None:
            logger.warning("Malformed %s descriptor: %s", data.type, data.invalid)
            return ErrorNode(data, data.invalid, parent)
        builder = self._builders.get(data.type)
        if builder is None:
            logger.warning("Unknown widget type: %s", data.type)
            return ErrorNode(data, f"Unknown widget type: {data.type}", parent)
        try:
            return builder(data, parent, self)
        except Exception as e:
            logger.warning("Failed to build %s: %s", data.type, e)
            return ErrorNode(data, f"Failed to build {data.type}: {e}", parent)

    def build_slots(self, data: NodeData) -> dict[str, list[VirtualNode]]:
        """Build every child group of ``data``, in order."""
        return {
            slot: [self.build(child) for child in children]
            for slot, children in (data.child_groups or {}).items()
        }

"""
Widget node descriptors.

A node descriptor is the JSON shape of one widget in a page or component
layout. Props are kept raw; they are classified into literals and
bindings when a VirtualNode is built from the descriptor.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Slot used by composites that take a flat list of children
DEFAULT_SLOT = "children"

# Type given to descriptors that do not name a widget type
INVALID_TYPE = "digia/invalid"


def _malformation(data: dict[str, Any]) -> str | None:
    type_key = data.get("type")
    if not isinstance(type_key, str) or not type_key:
        return "Widget descriptor has no type"
    ref_name = data.get("refName", data.get("ref_name"))
    if ref_name is not None and not isinstance(ref_name, str):
        return "refName must be a string"
    if not isinstance(data.get("props", {}), dict):
        return "props must be an object"
    for key in ("commonProps", "containerProps", "common_props"):
        if not isinstance(data.get(key) or {}, dict):
            return f"{key} must be an object"
    groups = data.get("childGroups", data.get("child_groups")) or {}
    if not isinstance(groups, dict) or not all(isinstance(g, list) for g in groups.values()):
        return "childGroups must map slot names to lists"
    return None


class NodeData(BaseModel):
    """
    Descriptor of one widget node.

    Example:
        NodeData.model_validate({
            "type": "digia/column",
            "childGroups": {"children": [{"type": "digia/text", "props": {"text": "Hi"}}]},
        })
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: str = Field(description="Widget type key, e.g. 'digia/text'")
    ref_name: str | None = Field(
        default=None, description="Name under which the node's runtime object enters scope"
    )
    props: dict[str, Any] = Field(default_factory=dict, description="Raw widget props")
    common_props: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("commonProps", "containerProps", "common_props"),
        description="Props shared by every widget (visibility, style, onClick)",
    )
    child_groups: dict[str, list[NodeData]] | None = Field(
        default=None, description="Named child slots"
    )
    invalid: str | None = Field(
        default=None, description="Why the descriptor is malformed; built as an error node"
    )

    @model_validator(mode="before")
    @classmethod
    def _tolerate_malformed(cls, data: Any) -> Any:
        """Keep a malformed descriptor in place instead of failing the document."""
        if isinstance(data, NodeData):
            return data
        if not isinstance(data, dict):
            return {"type": INVALID_TYPE, "invalid": "Widget descriptor must be an object"}
        reason = _malformation(data)
        if reason is None:
            return data
        type_key = data.get("type")
        return {
            "type": type_key if isinstance(type_key, str) and type_key else INVALID_TYPE,
            "invalid": reason,
        }

    def children(self, slot: str = DEFAULT_SLOT) -> list[NodeData]:
        if not self.child_groups:
            return []
        return self.child_groups.get(slot, [])

    def walk(self) -> list[NodeData]:
        """This node and every descendant, depth first."""
        nodes = [self]
        for group in (self.child_groups or {}).values():
            for child in group:
                nodes.extend(child.walk())
        return nodes


NodeData.model_rebuild()


class NodeBuilder:
    """
    Fluent helper for building descriptors in code.

    Example:
        node = (
            NodeBuilder("digia/column")
            .child(NodeBuilder("digia/text").prop("text", "@{title}"))
            .build()
        )
    """

    def __init__(self, type_key: str) -> None:
        self._type = type_key
        self._ref_name: str | None = None
        self._props: dict[str, Any] = {}
        self._common: dict[str, Any] = {}
        self._groups: dict[str, list[NodeData]] = {}

    def ref(self, name: str) -> NodeBuilder:
        self._ref_name = name
        return self

    def prop(self, name: str, value: Any) -> NodeBuilder:
        self._props[name] = value
        return self

    def props(self, **values: Any) -> NodeBuilder:
        self._props.update(values)
        return self

    def visible_if(self, binding: Any) -> NodeBuilder:
        self._common["visibility"] = binding
        return self

    def on_click(self, *actions: dict[str, Any]) -> NodeBuilder:
        self._common["onClick"] = {"actions": list(actions)}
        return self

    def child(self, node: NodeData | NodeBuilder, slot: str = DEFAULT_SLOT) -> NodeBuilder:
        built = node.build() if isinstance(node, NodeBuilder) else node
        self._groups.setdefault(slot, []).append(built)
        return self

    def build(self) -> NodeData:
        return NodeData(
            type=self._type,
            ref_name=self._ref_name,
            props=dict(self._props),
            common_props=dict(self._common) or None,
            child_groups={k: list(v) for k, v in self._groups.items()} or None,
        )


def node(type_key: str) -> NodeBuilder:
    return NodeBuilder(type_key)

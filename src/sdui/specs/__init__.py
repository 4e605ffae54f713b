"""
Typed, JSON-shaped descriptors of the delivered app document.
"""

from sdui.specs.api import ApiModel, ApiRequest, BodyType, HttpMethod
from sdui.specs.config import AppConfig, AppSettings, Environment, RestConfig
from sdui.specs.node import DEFAULT_SLOT, NodeBuilder, NodeData, node
from sdui.specs.page import ComponentDefinition, Layout, PageDefinition, VariableDef

__all__ = [
    "DEFAULT_SLOT",
    "ApiModel",
    "ApiRequest",
    "AppConfig",
    "AppSettings",
    "BodyType",
    "ComponentDefinition",
    "Environment",
    "HttpMethod",
    "Layout",
    "NodeBuilder",
    "NodeData",
    "PageDefinition",
    "RestConfig",
    "VariableDef",
    "node",
]

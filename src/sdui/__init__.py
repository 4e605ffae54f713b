"""
sdui - a server-driven UI interpretation runtime.

Loads a server-delivered app document, builds virtual node trees from its
page descriptors, evaluates ``@{...}`` bindings against a layered scope
chain, holds page and app state, and dispatches action flows.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version

from sdui.errors import ConfigurationError, SduiError
from sdui.runtime.context import RuntimeContext
from sdui.settings import RuntimeSettings, load_settings
from sdui.specs.config import AppConfig

try:
    __version__ = _metadata_version("sdui")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "AppConfig",
    "ConfigurationError",
    "RuntimeContext",
    "RuntimeSettings",
    "SduiError",
    "load_settings",
]

"""
App-state descriptor parsing.

Each entry of the document's ``appState`` list looks like::

    {"name": "cartCount", "type": "number", "value": 0,
     "shouldPersist": true, "streamName": "cartCountStream"}

Parsing dispatches on ``type`` through a small parser table. Unknown types
fail at load time with UnknownStateTypeError.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from sdui.errors import ConfigurationError, UnknownStateTypeError
from sdui.expr.coerce import to_bool, to_dict, to_list, to_number, to_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateDescriptor:
    """Uniform description of one declared app-state value."""

    key: str
    type_name: str
    initial_value: Any
    should_persist: bool
    stream_name: str
    coerce: Callable[[Any], Any]

    def serialize(self, value: Any) -> str:
        return json.dumps(value, separators=(",", ":"))

    def deserialize(self, text: str) -> Any:
        """Decode stored text. Corrupt text yields the initial value."""
        try:
            decoded = json.loads(text)
        except ValueError:
            # Plain strings written by older stores were not JSON-quoted
            decoded = text
        value = self.coerce(decoded)
        if value is None and decoded is not None:
            logger.warning(
                "Stored value for %r is not a valid %s; using initial value",
                self.key,
                self.type_name,
            )
            return self.initial_value
        return value

    def accepts(self, value: Any) -> tuple[bool, Any]:
        """Coerce a candidate update. ``(False, None)`` when it cannot be stored."""
        if value is None:
            return True, None
        coerced = self.coerce(value)
        if coerced is None:
            return False, None
        return True, coerced


# type name -> (coercer, default initial value factory)
_PARSERS: dict[str, tuple[Callable[[Any], Any], Callable[[], Any]]] = {
    "number": (to_number, lambda: 0),
    "string": (to_text, lambda: ""),
    "bool": (to_bool, lambda: False),
    "json": (to_dict, dict),
    "list": (to_list, list),
}

_ALIASES = {
    "boolean": "bool",
    "numeric": "number",
    "array": "list",
}


def normalize_type(type_name: Any) -> str | None:
    if not isinstance(type_name, str):
        return None
    if type_name in _PARSERS:
        return type_name
    return _ALIASES.get(type_name)


def parse_descriptor(raw: Mapping[str, Any]) -> StateDescriptor:
    """Parse one descriptor object.

    Raises:
        UnknownStateTypeError: the ``type`` has no parser.
        ConfigurationError: ``name`` is missing or not a string.
    """
    key = raw.get("name")
    if not isinstance(key, str) or not key:
        raise ConfigurationError("State descriptor is missing a name", {"descriptor": dict(raw)})

    type_name = normalize_type(raw.get("type"))
    if type_name is None:
        raise UnknownStateTypeError(raw.get("type"), key=key)

    coercer, default = _PARSERS[type_name]
    raw_initial = raw.get("value")
    initial = coercer(raw_initial) if raw_initial is not None else None
    if initial is None:
        if raw_initial is not None:
            logger.warning("Initial value of %r is not a valid %s", key, type_name)
        initial = default()

    stream_name = raw.get("streamName")
    return StateDescriptor(
        key=key,
        type_name=type_name,
        initial_value=initial,
        should_persist=bool(raw.get("shouldPersist", False)),
        stream_name=stream_name if isinstance(stream_name, str) and stream_name else f"{key}Stream",
        coerce=coercer,
    )


def parse_descriptors(raw_list: Any) -> list[StateDescriptor]:
    if raw_list is None:
        return []
    if not isinstance(raw_list, list):
        raise ConfigurationError("appState must be a list of descriptors")
    descriptors = []
    for entry in raw_list:
        if not isinstance(entry, Mapping):
            raise ConfigurationError("State descriptor must be an object", {"descriptor": entry})
        descriptors.append(parse_descriptor(entry))
    return descriptors

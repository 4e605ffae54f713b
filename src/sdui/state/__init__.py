"""
Reactive state: page-scoped StateTree and process-wide AppState.
"""

from sdui.state.app_state import AppState, AppStateScopeContext
from sdui.state.descriptor import StateDescriptor, parse_descriptor, parse_descriptors
from sdui.state.reactive import PersistedReactiveValue, ReactiveValue, Subscription
from sdui.state.state_tree import (
    ExprObserver,
    StateChange,
    StateContext,
    StateScope,
    StateScopeContext,
    StateTree,
)
from sdui.state.storage import JsonFileStore, KeyValueStore, MemoryStore, app_state_key

__all__ = [
    "AppState",
    "AppStateScopeContext",
    "ExprObserver",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "PersistedReactiveValue",
    "ReactiveValue",
    "StateChange",
    "StateContext",
    "StateDescriptor",
    "StateScope",
    "StateScopeContext",
    "StateTree",
    "Subscription",
    "app_state_key",
    "parse_descriptor",
    "parse_descriptors",
]

"""
Actions: descriptors, flows, construction and dispatch.
"""

from sdui.actions.base import Action, ActionFlow, ActionType, is_flow_value
from sdui.actions.dispatcher import ActionDispatcher
from sdui.actions.factory import ActionFactory
from sdui.actions.kinds import (
    ACTION_KINDS,
    CallRestApiAction,
    DelayAction,
    GetAppStateAction,
    HideBottomSheetAction,
    LaunchMode,
    NavigateToPageAction,
    OpenUrlAction,
    PopAction,
    PopToPageAction,
    RebuildStateAction,
    ResetAppStateAction,
    SetAppStateAction,
    SetStateAction,
    ShowBottomSheetAction,
    ShowToastAction,
    StateUpdate,
    ToastDuration,
    UnsupportedAction,
)
from sdui.actions.processors import ActionContext, ActionProcessor, default_processors

__all__ = [
    "ACTION_KINDS",
    "Action",
    "ActionContext",
    "ActionDispatcher",
    "ActionFactory",
    "ActionFlow",
    "ActionProcessor",
    "ActionType",
    "CallRestApiAction",
    "DelayAction",
    "GetAppStateAction",
    "HideBottomSheetAction",
    "LaunchMode",
    "NavigateToPageAction",
    "OpenUrlAction",
    "PopAction",
    "PopToPageAction",
    "RebuildStateAction",
    "ResetAppStateAction",
    "SetAppStateAction",
    "SetStateAction",
    "ShowBottomSheetAction",
    "ShowToastAction",
    "StateUpdate",
    "ToastDuration",
    "UnsupportedAction",
    "default_processors",
]

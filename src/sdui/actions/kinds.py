"""
Concrete action kinds.

Each class validates the ``data`` payload of its descriptor. Fields that
may be bound are ExprOr; structured payloads (args, new values, results)
stay raw and are deep-evaluated when the action runs.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from sdui.actions.base import Action, ActionFlow, ActionType
from sdui.expr.expr_or import ExprOr


def _updates_from(data: Any, map_key: str) -> Any:
    """Normalize ``{map_key: {k: v}}`` into the ``updates`` list form."""
    if not isinstance(data, dict):
        return data
    updates = data.get("updates")
    if isinstance(updates, dict):
        updates = [{"stateName": k, "newValue": v} for k, v in updates.items()]
    elif updates is None and isinstance(data.get(map_key), dict):
        updates = [{"stateName": k, "newValue": v} for k, v in data[map_key].items()]
    if updates is None:
        return data
    rest = {k: v for k, v in data.items() if k not in ("updates", map_key)}
    return {**rest, "updates": updates}


class StateUpdate(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    state_name: str
    new_value: Any = None


# =============================================================================
# State
# =============================================================================


class SetStateAction(Action):
    """Write evaluated values into the current page or component state."""

    action_type: ClassVar[ActionType] = ActionType.SET_STATE

    updates: list[StateUpdate] = Field(default_factory=list)
    rebuild: bool = Field(default=False, description="Also republish every bound value")

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        return _updates_from(data, "state")


class RebuildStateAction(Action):
    action_type: ClassVar[ActionType] = ActionType.REBUILD_STATE


class SetAppStateAction(Action):
    action_type: ClassVar[ActionType] = ActionType.SET_APP_STATE

    updates: list[StateUpdate] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        return _updates_from(data, "state")


class GetAppStateAction(Action):
    """Copy an app-state value into a page state key."""

    action_type: ClassVar[ActionType] = ActionType.GET_APP_STATE

    app_state_key: ExprOr[str] | None = None
    target_state_key: ExprOr[str] | None = None


class ResetAppStateAction(Action):
    """Restore app state to declared initial values (all keys when ``keys`` is absent)."""

    action_type: ClassVar[ActionType] = ActionType.RESET_APP_STATE

    keys: list[str] | None = None


# =============================================================================
# Navigation
# =============================================================================


class NavigateToPageAction(Action):
    action_type: ClassVar[ActionType] = ActionType.NAVIGATE_TO_PAGE

    page_id: ExprOr[str] | None = None
    args: dict[str, Any] | None = None
    replace: ExprOr[bool] | None = None
    wait_for_result: bool = False
    on_result: ActionFlow | None = None


class PopAction(Action):
    action_type: ClassVar[ActionType] = ActionType.POP

    result: Any = None


class PopToPageAction(Action):
    action_type: ClassVar[ActionType] = ActionType.POP_TO_PAGE

    page_id: ExprOr[str] | None = None
    inclusive: ExprOr[bool] | None = None


# =============================================================================
# Hosts
# =============================================================================


class LaunchMode(StrEnum):
    PLATFORM_DEFAULT = "platformDefault"
    IN_APP = "inAppWebView"
    EXTERNAL = "externalApplication"
    EXTERNAL_NON_BROWSER = "externalNonBrowserApplication"

    @classmethod
    def parse(cls, value: Any) -> LaunchMode:
        return _LAUNCH_MODES.get(value, cls.PLATFORM_DEFAULT) if isinstance(value, str) else cls.PLATFORM_DEFAULT


_LAUNCH_MODES = {
    "inAppWebView": LaunchMode.IN_APP,
    "inApp": LaunchMode.IN_APP,
    "externalApplication": LaunchMode.EXTERNAL,
    "external": LaunchMode.EXTERNAL,
    "externalNonBrowserApplication": LaunchMode.EXTERNAL_NON_BROWSER,
}


class OpenUrlAction(Action):
    action_type: ClassVar[ActionType] = ActionType.OPEN_URL

    url: ExprOr[str] | None = None
    launch_mode: ExprOr[str] | None = None


class ToastDuration(StrEnum):
    SHORT = "short"
    LONG = "long"


class ShowToastAction(Action):
    action_type: ClassVar[ActionType] = ActionType.SHOW_TOAST

    message: ExprOr[str] | None = None
    duration: ExprOr[str] | None = None


class ViewData(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: ExprOr[str] | None = None
    args: dict[str, Any] | None = None


class ShowBottomSheetAction(Action):
    action_type: ClassVar[ActionType] = ActionType.SHOW_BOTTOM_SHEET

    view_data: ViewData | None = None
    style: dict[str, Any] | None = None
    wait_for_result: bool = False
    on_result: ActionFlow | None = None


class HideBottomSheetAction(Action):
    action_type: ClassVar[ActionType] = ActionType.HIDE_BOTTOM_SHEET

    result: Any = None


# =============================================================================
# Async
# =============================================================================


class CallRestApiAction(Action):
    """Run a REST resource; branch into ``on_success``/``on_error``."""

    action_type: ClassVar[ActionType] = ActionType.CALL_REST_API

    api_model_id: ExprOr[str] | None = None
    args: dict[str, Any] | None = None
    state_var_name: ExprOr[str] | None = None
    on_success: ActionFlow | None = None
    on_error: ActionFlow | None = None


class DelayAction(Action):
    action_type: ClassVar[ActionType] = ActionType.DELAY

    duration_in_ms: ExprOr[int] | None = None


class UnsupportedAction(Action):
    """Stand-in for an action that could not be constructed.

    Running it shows a diagnostic toast and changes nothing else.
    """

    action_type: ClassVar[ActionType] = ActionType.UNSUPPORTED

    requested_type: str | None = None
    reason: str = "unknown type"

    @property
    def message(self) -> str:
        if self.reason == "unknown type":
            return f"Unsupported action type: {self.requested_type}"
        return f"Invalid {self.requested_type} action: {self.reason}"


ACTION_KINDS: dict[ActionType, type[Action]] = {
    kind.action_type: kind
    for kind in (
        SetStateAction,
        RebuildStateAction,
        SetAppStateAction,
        GetAppStateAction,
        ResetAppStateAction,
        NavigateToPageAction,
        PopAction,
        PopToPageAction,
        OpenUrlAction,
        ShowToastAction,
        ShowBottomSheetAction,
        HideBottomSheetAction,
        CallRestApiAction,
        DelayAction,
        UnsupportedAction,
    )
}

"""
Action model base types.

An action descriptor is ``{"type": "Action.x", "disableActionIf": ..., "data": {...}}``.
Every kind is a frozen pydantic model whose fields may hold ExprOr values;
an ActionFlow is the ordered list of actions attached to one event.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from sdui.expr.expr_or import ExprOr

logger = logging.getLogger(__name__)


class ActionType(StrEnum):
    """Action type tags as they appear in descriptors."""

    SET_STATE = "Action.setState"
    REBUILD_STATE = "Action.rebuildState"
    SET_APP_STATE = "Action.setAppState"
    GET_APP_STATE = "Action.getAppState"
    RESET_APP_STATE = "Action.resetAppState"
    NAVIGATE_TO_PAGE = "Action.navigateToPage"
    POP = "Action.pop"
    POP_TO_PAGE = "Action.popToPage"
    OPEN_URL = "Action.openUrl"
    SHOW_TOAST = "Action.showToast"
    SHOW_BOTTOM_SHEET = "Action.showBottomSheet"
    HIDE_BOTTOM_SHEET = "Action.hideBottomSheet"
    CALL_REST_API = "Action.callRestApi"
    DELAY = "Action.delay"
    UNSUPPORTED = "Action.unsupported"

    @classmethod
    def parse(cls, value: Any) -> ActionType | None:
        """Map a descriptor tag to a type; ``None`` when unknown."""
        if not isinstance(value, str):
            return None
        value = _TYPE_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return None


_TYPE_ALIASES = {
    "Action.navigateBack": "Action.pop",
    "Action.popPage": "Action.pop",
    "Action.gotoPage": "Action.navigateToPage",
}


class Action(BaseModel):
    """Fields shared by every action kind."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    action_type: ClassVar[ActionType]

    action_id: str | None = Field(default=None, description="Optional id for diagnostics")
    disable_action_if: ExprOr[bool] | None = Field(
        default=None, description="Skip this action when it evaluates true"
    )

    @property
    def label(self) -> str:
        return self.action_id or self.action_type.value


class ActionFlow(BaseModel):
    """
    Ordered actions run for one event.

    Accepts ``{"actions": [...]}`` or a bare list; entries are parsed with
    the action factory. Unknown kinds become UnsupportedAction entries, so
    the flow keeps its length.

    Example:
        flow = ActionFlow.model_validate({"actions": [
            {"type": "Action.setState", "data": {"state": {"count": "@{count + 1}"}}},
        ]})
    """

    model_config = ConfigDict(frozen=True)

    actions: list[Action] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _parse_actions(cls, data: Any) -> Any:
        from sdui.actions.factory import ActionFactory

        if isinstance(data, ActionFlow):
            return data
        if isinstance(data, list):
            data = {"actions": data}
        if not isinstance(data, dict):
            return data
        parsed: list[Action] = []
        for raw in data.get("actions") or []:
            action = raw if isinstance(raw, Action) else ActionFactory.from_json(raw)
            if action is not None:
                parsed.append(action)
        return {"actions": parsed}

    @classmethod
    def from_json(cls, raw: Any) -> ActionFlow | None:
        """Parse a flow descriptor; ``None`` for absent or non-flow values."""
        if raw is None:
            return None
        if isinstance(raw, ActionFlow):
            return raw
        if not isinstance(raw, (dict, list)):
            logger.warning("Ignoring action flow of type %s", type(raw).__name__)
            return None
        return cls.model_validate(raw)

    def __iter__(self) -> Iterator[Action]:  # type: ignore[override]
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def is_empty(self) -> bool:
        return not self.actions

    def walk(self) -> Iterator[Action]:
        """Every action in this flow and in nested sub-flows."""
        for action in self.actions:
            yield action
            for value in action.__dict__.values():
                if isinstance(value, ActionFlow):
                    yield from value.walk()


def is_flow_value(raw: Any) -> bool:
    """True for prop values shaped like an action flow."""
    return isinstance(raw, dict) and isinstance(raw.get("actions"), list)

"""
Action construction from descriptor JSON.

Construction never aborts a flow: unknown types and payloads that fail
validation both become UnsupportedAction entries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from sdui.actions.base import Action, ActionType
from sdui.actions.kinds import ACTION_KINDS, UnsupportedAction

logger = logging.getLogger(__name__)


class ActionFactory:
    """Type-indexed table of action kinds."""

    kinds: dict[ActionType, type[Action]] = ACTION_KINDS

    @classmethod
    def from_json(cls, raw: Any) -> Action | None:
        """Build an action from ``{"type", "disableActionIf", "data"}``.

        Returns ``None`` only for values that are not objects at all.
        """
        if not isinstance(raw, Mapping):
            logger.warning("Ignoring action descriptor of type %s", type(raw).__name__)
            return None

        type_tag = raw.get("type")
        common = {
            "disableActionIf": raw.get("disableActionIf"),
            "actionId": raw.get("actionId") or raw.get("id"),
        }

        action_type = ActionType.parse(type_tag)
        if action_type is None or action_type not in cls.kinds:
            logger.warning("Unsupported action type: %s", type_tag)
            return UnsupportedAction.model_validate({**common, "requestedType": str(type_tag)})

        data = raw.get("data")
        payload = dict(data) if isinstance(data, Mapping) else {}
        try:
            return cls.kinds[action_type].model_validate({**payload, **common})
        except ValidationError as e:
            logger.warning("Invalid %s action: %s", type_tag, e)
            return UnsupportedAction.model_validate(
                {**common, "requestedType": str(type_tag), "reason": f"{e.error_count()} invalid field(s)"}
            )

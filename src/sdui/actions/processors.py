"""
Action processors.

One processor per action kind. Expected failures (unknown target ids,
network errors, rejected writes) are logged or routed into the action's
own ``on_error`` flow; processors do not raise for them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sdui.actions.base import Action, ActionType
from sdui.actions.kinds import (
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
    ToastDuration,
    UnsupportedAction,
)
from sdui.errors import AppStateError, NetworkError
from sdui.expr.expr_or import ExprOr, deep_evaluate
from sdui.expr.scope import ScopeContext
from sdui.navigation.events import ResultCallback
from sdui.runtime.hosts import BottomSheetRequest

if TYPE_CHECKING:
    from sdui.actions.dispatcher import ActionDispatcher
    from sdui.runtime.context import RuntimeContext
    from sdui.state.state_tree import StateContext

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=Action)


@dataclass(frozen=True)
class ActionContext:
    """What a processor may touch while running one action."""

    runtime: RuntimeContext
    dispatcher: ActionDispatcher
    scope: ScopeContext
    state: StateContext | None = None

    def eval(self, value: ExprOr[Any] | None, as_type: type | None = None, default: Any = None) -> Any:
        if value is None:
            return default
        result = value.evaluate(self.scope, as_type)
        return default if result is None else result

    def deep(self, raw: Any) -> Any:
        return deep_evaluate(raw, self.scope)

    def sub_scope(self, name: str, variables: dict[str, Any]) -> ScopeContext:
        return self.scope.child(name, variables)

    @property
    def state_alive(self) -> bool:
        return self.state is None or self.state.is_active


class ActionProcessor(Generic[A]):
    """Base class. ``execute`` returns the action's result value."""

    action_type: ActionType

    async def execute(self, action: A, ctx: ActionContext) -> Any:
        raise NotImplementedError


# =============================================================================
# State
# =============================================================================


class SetStateProcessor(ActionProcessor[SetStateAction]):
    action_type = ActionType.SET_STATE

    async def execute(self, action: SetStateAction, ctx: ActionContext) -> Any:
        if ctx.state is None:
            logger.warning("setState outside of any state scope ignored")
            return None
        written: dict[str, bool] = {}
        with ctx.state.batch():
            # Each value sees the writes before it
            for update in action.updates:
                written[update.state_name] = ctx.state.set(update.state_name, ctx.deep(update.new_value))
            if action.rebuild:
                ctx.state.rebuild()
        return written


class RebuildStateProcessor(ActionProcessor[RebuildStateAction]):
    action_type = ActionType.REBUILD_STATE

    async def execute(self, action: RebuildStateAction, ctx: ActionContext) -> Any:
        if ctx.state is not None:
            ctx.state.rebuild()
        return None


class SetAppStateProcessor(ActionProcessor[SetAppStateAction]):
    action_type = ActionType.SET_APP_STATE

    async def execute(self, action: SetAppStateAction, ctx: ActionContext) -> Any:
        app_state = ctx.runtime.app_state
        changed: dict[str, bool] = {}
        for update in action.updates:
            key = update.state_name
            if not app_state.has(key):
                logger.warning("Rejected write to undeclared app state key %r", key)
                changed[key] = False
                continue
            try:
                changed[key] = app_state.update(key, ctx.deep(update.new_value))
            except AppStateError as e:
                logger.warning("Rejected app state write: %s", e)
                changed[key] = False
        return changed


class GetAppStateProcessor(ActionProcessor[GetAppStateAction]):
    action_type = ActionType.GET_APP_STATE

    async def execute(self, action: GetAppStateAction, ctx: ActionContext) -> Any:
        key = ctx.eval(action.app_state_key, str)
        if not key or not ctx.runtime.app_state.has(key):
            logger.warning("getAppState: unknown app state key %r", key)
            return None
        value = ctx.runtime.app_state.value(key)
        target = ctx.eval(action.target_state_key, str)
        if target and ctx.state is not None:
            ctx.state.set(target, value)
        return value


class ResetAppStateProcessor(ActionProcessor[ResetAppStateAction]):
    action_type = ActionType.RESET_APP_STATE

    async def execute(self, action: ResetAppStateAction, ctx: ActionContext) -> Any:
        app_state = ctx.runtime.app_state
        if action.keys is None:
            app_state.reset()
            return None
        for key in action.keys:
            if app_state.has(key):
                app_state.update(key, app_state.descriptor(key).initial_value)
            else:
                logger.warning("resetAppState: unknown app state key %r", key)
        return None


# =============================================================================
# Navigation
# =============================================================================


class NavigateToPageProcessor(ActionProcessor[NavigateToPageAction]):
    action_type = ActionType.NAVIGATE_TO_PAGE

    async def execute(self, action: NavigateToPageAction, ctx: ActionContext) -> Any:
        page_id = ctx.eval(action.page_id, str)
        if not page_id or ctx.runtime.config.get_page(page_id) is None:
            logger.warning("navigateToPage: unknown page %r", page_id)
            return None
        if action.wait_for_result and action.on_result is not None:
            ctx.runtime.navigation.register_result_callback(
                page_id, ResultCallback(action.on_result, ctx.scope, ctx.state)
            )
        args = ctx.deep(action.args) if action.args else None
        ctx.runtime.navigation.navigate(page_id, args, replace=bool(ctx.eval(action.replace, bool, False)))
        return None


class PopProcessor(ActionProcessor[PopAction]):
    action_type = ActionType.POP

    async def execute(self, action: PopAction, ctx: ActionContext) -> Any:
        result = ctx.deep(action.result)
        ctx.runtime.navigation.pop(result)
        return result


class PopToPageProcessor(ActionProcessor[PopToPageAction]):
    action_type = ActionType.POP_TO_PAGE

    async def execute(self, action: PopToPageAction, ctx: ActionContext) -> Any:
        page_id = ctx.eval(action.page_id, str)
        if not page_id:
            logger.warning("popToPage without a page id ignored")
            return None
        ctx.runtime.navigation.pop_to(page_id, inclusive=bool(ctx.eval(action.inclusive, bool, False)))
        return None


# =============================================================================
# Hosts
# =============================================================================


class OpenUrlProcessor(ActionProcessor[OpenUrlAction]):
    action_type = ActionType.OPEN_URL

    async def execute(self, action: OpenUrlAction, ctx: ActionContext) -> Any:
        url = ctx.eval(action.url, str)
        if not url:
            logger.warning("openUrl without a URL ignored")
            return False
        launched = ctx.runtime.url_launcher.launch(url, LaunchMode.parse(ctx.eval(action.launch_mode, str)))
        if not launched:
            logger.warning("Could not open %s", url)
        return launched


class ShowToastProcessor(ActionProcessor[ShowToastAction]):
    action_type = ActionType.SHOW_TOAST

    async def execute(self, action: ShowToastAction, ctx: ActionContext) -> Any:
        message = ctx.eval(action.message, str, "")
        duration = ToastDuration.LONG if ctx.eval(action.duration, str) == "long" else ToastDuration.SHORT
        ctx.runtime.toaster.show(message, duration)
        return None


class ShowBottomSheetProcessor(ActionProcessor[ShowBottomSheetAction]):
    action_type = ActionType.SHOW_BOTTOM_SHEET

    async def execute(self, action: ShowBottomSheetAction, ctx: ActionContext) -> Any:
        view = action.view_data
        component_id = ctx.eval(view.id, str) if view is not None else None
        if view is None or not component_id or ctx.runtime.config.get_component(component_id) is None:
            logger.warning("showBottomSheet: unknown component %r", component_id)
            return None

        request = BottomSheetRequest(
            component_id=component_id,
            args=ctx.deep(view.args) or {},
            style=ctx.deep(action.style) or {},
        )
        presented = ctx.runtime.bottom_sheets.show(request)
        if not action.wait_for_result:
            return None

        result = await presented
        if not ctx.state_alive:
            logger.debug("Bottom sheet closed after its page unmounted")
            return result
        if action.on_result is not None:
            await ctx.dispatcher.execute(
                action.on_result, ctx.sub_scope("bottomSheet", {"result": result}), ctx.state
            )
        return result


class HideBottomSheetProcessor(ActionProcessor[HideBottomSheetAction]):
    action_type = ActionType.HIDE_BOTTOM_SHEET

    async def execute(self, action: HideBottomSheetAction, ctx: ActionContext) -> Any:
        return ctx.runtime.bottom_sheets.dismiss(ctx.deep(action.result))


# =============================================================================
# Async
# =============================================================================


class CallRestApiProcessor(ActionProcessor[CallRestApiAction]):
    """
    Run a REST resource.

    ``on_success`` runs for 2xx responses with ``response``/``result``
    bound; ``on_error`` runs otherwise with ``error`` bound. Both run as
    separate flows; the calling flow does not wait for them.
    """

    action_type = ActionType.CALL_REST_API

    async def execute(self, action: CallRestApiAction, ctx: ActionContext) -> Any:
        config = ctx.runtime.config
        api_id = ctx.eval(action.api_model_id, str)
        model = config.get_api_model(api_id) if api_id else None
        if model is None:
            logger.warning("callRestApi: unknown API model %r", api_id)
            self._branch(action, ctx, None, {"message": f"API model not found: {api_id}"})
            return None

        request = model.build_request(ctx.deep(action.args), ctx.scope, config.rest.default_headers)
        try:
            response = await ctx.runtime.network.send(request)
        except NetworkError as e:
            logger.warning("callRestApi %r failed: %s", api_id, e)
            if ctx.state_alive:
                self._branch(action, ctx, None, {"message": str(e)})
            return None

        if not ctx.state_alive:
            logger.debug("callRestApi %r completed after its page unmounted", api_id)
            return response.to_scope()

        payload = response.to_scope()
        state_var = ctx.eval(action.state_var_name, str)
        if state_var and ctx.state is not None:
            ctx.state.set(state_var, payload)

        if response.ok:
            self._branch(action, ctx, payload, None)
        else:
            error = {
                "message": f"HTTP {response.status_code}",
                "statusCode": response.status_code,
                "body": response.body,
            }
            self._branch(action, ctx, payload, error)
        return payload

    def _branch(
        self,
        action: CallRestApiAction,
        ctx: ActionContext,
        payload: dict[str, Any] | None,
        error: dict[str, Any] | None,
    ) -> None:
        flow = action.on_error if error is not None else action.on_success
        if flow is None:
            return
        variables: dict[str, Any] = {"response": payload, "result": payload}
        if error is not None:
            variables["error"] = error
        ctx.dispatcher.spawn(flow, ctx.sub_scope("apiResult", variables), ctx.state)


class DelayProcessor(ActionProcessor[DelayAction]):
    action_type = ActionType.DELAY

    async def execute(self, action: DelayAction, ctx: ActionContext) -> Any:
        millis = ctx.eval(action.duration_in_ms, int, 0)
        if millis > 0:
            await asyncio.sleep(millis / 1000)
        return None


class UnsupportedProcessor(ActionProcessor[UnsupportedAction]):
    action_type = ActionType.UNSUPPORTED

    async def execute(self, action: UnsupportedAction, ctx: ActionContext) -> Any:
        ctx.runtime.toaster.show(action.message, ToastDuration.SHORT)
        return None


def default_processors() -> list[ActionProcessor[Any]]:
    return [
        SetStateProcessor(),
        RebuildStateProcessor(),
        SetAppStateProcessor(),
        GetAppStateProcessor(),
        ResetAppStateProcessor(),
        NavigateToPageProcessor(),
        PopProcessor(),
        PopToPageProcessor(),
        OpenUrlProcessor(),
        ShowToastProcessor(),
        ShowBottomSheetProcessor(),
        HideBottomSheetProcessor(),
        CallRestApiProcessor(),
        DelayProcessor(),
        UnsupportedProcessor(),
    ]

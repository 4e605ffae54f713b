"""
Action dispatcher.

Runs an ActionFlow left to right on the event loop. Before each action
its ``disableActionIf`` guard is evaluated against the live scope, so an
earlier write can disable a later action. Awaited work inside an action
finishes before the next guard is evaluated; sub-flows started with
``spawn`` do not.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from sdui.actions.base import Action, ActionFlow, ActionType
from sdui.actions.processors import ActionContext, ActionProcessor, default_processors
from sdui.errors import DispatcherError
from sdui.expr.scope import ScopeContext

if TYPE_CHECKING:
    from sdui.runtime.context import RuntimeContext
    from sdui.state.state_tree import StateContext

logger = logging.getLogger(__name__)


class ActionDispatcher:
    """
    Routes each action to the processor registered for its type.

    Example:
        dispatcher = ActionDispatcher(runtime)
        await dispatcher.execute(flow, page.scope(), page.state)
        await dispatcher.wait_idle()
    """

    def __init__(
        self,
        runtime: RuntimeContext,
        processors: list[ActionProcessor[Any]] | None = None,
    ) -> None:
        self.runtime = runtime
        self._processors: dict[ActionType, ActionProcessor[Any]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        for processor in processors if processors is not None else default_processors():
            self.register(processor)

    def register(self, processor: ActionProcessor[Any]) -> None:
        self._processors[processor.action_type] = processor

    def processor_for(self, action: Action) -> ActionProcessor[Any]:
        processor = self._processors.get(action.action_type)
        if processor is None:
            raise DispatcherError(
                "No processor registered for action type", {"type": action.action_type.value}
            )
        return processor

    def is_disabled(self, action: Action, scope: ScopeContext) -> bool:
        if action.disable_action_if is None:
            return False
        return bool(action.disable_action_if.evaluate(scope, bool))

    async def execute(
        self,
        flow: ActionFlow | None,
        scope: ScopeContext | None = None,
        state: StateContext | None = None,
    ) -> Any:
        """Run ``flow``; returns the result of the last action that ran.

        Raises:
            DispatcherError: an action has no processor. The rest of the
                flow is abandoned.
        """
        if flow is None or flow.is_empty:
            return None
        scope = scope or ScopeContext("root")
        ctx = ActionContext(runtime=self.runtime, dispatcher=self, scope=scope, state=state)

        result: Any = None
        for action in flow:
            if self.is_disabled(action, scope):
                logger.debug("Skipping disabled action %s", action.label)
                continue
            processor = self.processor_for(action)
            try:
                result = await processor.execute(action, ctx)
            except DispatcherError:
                raise
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Action %s failed", action.label)
                result = None
        return result

    def spawn(
        self,
        flow: ActionFlow | None,
        scope: ScopeContext | None = None,
        state: StateContext | None = None,
    ) -> asyncio.Task[Any] | None:
        """Start ``flow`` as a separate task and return immediately.

        Raises:
            DispatcherError: called without a running event loop.
        """
        if flow is None or flow.is_empty:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise DispatcherError("Spawning a flow requires a running event loop") from e
        task = loop.create_task(self.execute(flow, scope, state))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Spawned flow aborted: %s", error)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for every spawned flow, including flows they spawn."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

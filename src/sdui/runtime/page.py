"""
A mounted page.

Resolution order for expressions rendered on a page, innermost first:
page arguments (and ``pageParams``), page state, app state, then the
environment variables and standard functions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sdui.errors import ConfigurationError
from sdui.expr.scope import ScopeContext
from sdui.specs.page import PageDefinition
from sdui.state.state_tree import StateContext, StateScopeContext
from sdui.widgets.node import VirtualNode
from sdui.widgets.render import RenderedNode, RenderPayload

if TYPE_CHECKING:
    from sdui.runtime.context import RuntimeContext

logger = logging.getLogger(__name__)


class PageInstance:
    """One activation of a PageDefinition."""

    def __init__(
        self,
        runtime: RuntimeContext,
        definition: PageDefinition,
        args: dict[str, Any],
        state: StateContext,
        root: VirtualNode | None,
    ) -> None:
        self.runtime = runtime
        self.definition = definition
        self.args = args
        self._state = state
        self.root = root

    @classmethod
    def mount(
        cls,
        runtime: RuntimeContext,
        page_id: str,
        args: dict[str, Any] | None = None,
        namespace: str | None = None,
        state_overrides: dict[str, Any] | None = None,
    ) -> PageInstance:
        """
        Resolve arguments, create the page's state scope and build its tree.

        Raises:
            ConfigurationError: ``page_id`` is not a page of the document.
        """
        definition = runtime.config.get_page(page_id)
        if definition is None:
            raise ConfigurationError(f"Unknown page: {page_id}", {"page_id": page_id})

        resolved = definition.resolve_args(args)
        initial = definition.initial_state()
        for key, value in (state_overrides or {}).items():
            if key in initial:
                initial[key] = value
            else:
                logger.warning("Ignoring override of undeclared state key %r on %s", key, page_id)
        state = runtime.state_tree.context(namespace or page_id, initial)

        root = runtime.registry.build(definition.root) if definition.root is not None else None
        logger.debug("Mounted page %s in %s", page_id, state.namespace)
        return cls(runtime, definition, resolved, state, root)

    @property
    def page_id(self) -> str:
        return self.definition.uid

    @property
    def state(self) -> StateContext:
        return self._state

    @property
    def mounted(self) -> bool:
        return self._state.is_active

    def scope(self) -> ScopeContext:
        state_link = StateScopeContext(self._state, enclosing=self.runtime.app_scope())
        return ScopeContext("page", {**self.args, "pageParams": dict(self.args)}, enclosing=state_link)

    def payload(self) -> RenderPayload:
        return RenderPayload(self.scope(), self._state, self.runtime)

    def render(self) -> RenderedNode:
        if self.root is None:
            return RenderedNode(type="page", props={"pageId": self.page_id})
        return self.root.render(self.payload())

    def unmount(self) -> None:
        self.runtime.state_tree.dispose(self._state.namespace)
        logger.debug("Unmounted page %s", self.page_id)

    def __repr__(self) -> str:
        return f"PageInstance(page_id={self.page_id!r}, namespace={self._state.namespace!r})"

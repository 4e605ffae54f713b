"""
Runtime service container.

RuntimeContext holds every collaborator the interpreter needs and is
passed explicitly to whatever needs one. There are no module-level
singletons.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sdui.actions.dispatcher import ActionDispatcher
from sdui.expr.scope import ScopeContext
from sdui.expr.stdlib import STD_FUNCTIONS
from sdui.navigation.bus import NavigationBus
from sdui.runtime.hosts import (
    BottomSheetHost,
    InMemoryBottomSheetHost,
    RecordingToaster,
    RecordingUrlLauncher,
    Toaster,
    UrlLauncher,
)
from sdui.runtime.network import NetworkClient
from sdui.runtime.page import PageInstance
from sdui.settings import RuntimeSettings
from sdui.specs.config import AppConfig
from sdui.state.app_state import AppState, AppStateScopeContext
from sdui.state.state_tree import StateTree
from sdui.state.storage import JsonFileStore, KeyValueStore, MemoryStore
from sdui.widgets.builtins import register_builtin_widgets
from sdui.widgets.registry import WidgetRegistry

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    config: AppConfig
    settings: RuntimeSettings
    registry: WidgetRegistry
    app_state: AppState
    state_tree: StateTree
    navigation: NavigationBus
    network: NetworkClient
    toaster: Toaster
    url_launcher: UrlLauncher
    bottom_sheets: BottomSheetHost
    dispatcher: ActionDispatcher = field(init=False)

    def __post_init__(self) -> None:
        self.dispatcher = ActionDispatcher(self)

    @classmethod
    def create(
        cls,
        config: AppConfig,
        settings: RuntimeSettings | None = None,
        *,
        store: KeyValueStore | None = None,
        toaster: Toaster | None = None,
        url_launcher: UrlLauncher | None = None,
        bottom_sheets: BottomSheetHost | None = None,
        network: NetworkClient | None = None,
        registry: WidgetRegistry | None = None,
    ) -> RuntimeContext:
        """
        Build and initialize every service for ``config``.

        Hosts default to the recording in-memory implementations.

        Raises:
            ConfigurationError: the document's app-state declarations are invalid.
        """
        settings = settings or RuntimeSettings()
        if store is None:
            store = JsonFileStore(settings.persist_path) if settings.persist_path else MemoryStore()

        app_state = AppState()
        app_state.init(config.app_state, store=store, project_id=settings.project_id)

        runtime = cls(
            config=config,
            settings=settings,
            registry=registry or register_builtin_widgets(WidgetRegistry()),
            app_state=app_state,
            state_tree=StateTree(),
            navigation=NavigationBus(),
            network=network
            or NetworkClient(
                base_url=settings.base_url,
                timeout=settings.request_timeout,
            ),
            toaster=toaster or RecordingToaster(),
            url_launcher=url_launcher or RecordingUrlLauncher(),
            bottom_sheets=bottom_sheets or InMemoryBottomSheetHost(),
        )
        logger.debug("Runtime created for project %s", settings.project_id)
        return runtime

    def root_scope(self) -> ScopeContext:
        """Standard functions and environment variables."""
        return ScopeContext("root", {**STD_FUNCTIONS, **self.config.env_variables()})

    def app_scope(self) -> ScopeContext:
        """App state over the root scope."""
        return AppStateScopeContext(self.app_state, enclosing=self.root_scope())

    def open_page(
        self,
        page_id: str,
        args: dict[str, Any] | None = None,
        namespace: str | None = None,
    ) -> PageInstance:
        return PageInstance.mount(self, page_id, args, namespace=namespace)

    async def aclose(self) -> None:
        """Wait for spawned flows, then release network and state."""
        await self.dispatcher.wait_idle()
        await self.network.aclose()
        self.state_tree.clear()
        self.app_state.dispose()

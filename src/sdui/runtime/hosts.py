"""
Host collaborators: the platform pieces actions drive but do not own.

The protocols are what processors call. The recording implementations
serve headless runs (the CLI) and tests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Protocol

from sdui.actions.kinds import LaunchMode, ToastDuration

logger = logging.getLogger(__name__)


class Toaster(Protocol):
    def show(self, message: str, duration: ToastDuration) -> None: ...


class UrlLauncher(Protocol):
    def launch(self, url: str, mode: LaunchMode) -> bool: ...


@dataclass(frozen=True)
class BottomSheetRequest:
    """A resolved request to present a component as a bottom sheet."""

    component_id: str
    args: dict[str, Any] = field(default_factory=dict)
    style: dict[str, Any] = field(default_factory=dict)


class BottomSheetHost(Protocol):
    def show(self, request: BottomSheetRequest) -> Awaitable[Any]:
        """Present ``request``. The awaitable resolves with the dismissal result."""
        ...

    def dismiss(self, result: Any = None) -> bool: ...


class RecordingToaster:
    def __init__(self) -> None:
        self.messages: list[tuple[str, ToastDuration]] = []

    def show(self, message: str, duration: ToastDuration) -> None:
        logger.info("Toast (%s): %s", duration.value, message)
        self.messages.append((message, duration))

    @property
    def texts(self) -> list[str]:
        return [message for message, _ in self.messages]


class RecordingUrlLauncher:
    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.launched: list[tuple[str, LaunchMode]] = []

    def launch(self, url: str, mode: LaunchMode) -> bool:
        logger.info("Open URL (%s): %s", mode.value, url)
        self.launched.append((url, mode))
        return self.succeed


class InMemoryBottomSheetHost:
    """Keeps presented sheets on a stack; ``dismiss`` resolves the top one."""

    def __init__(self) -> None:
        self._open: list[tuple[BottomSheetRequest, asyncio.Future[Any]]] = []
        self.history: list[BottomSheetRequest] = []

    @property
    def presented(self) -> list[BottomSheetRequest]:
        return [request for request, _ in self._open]

    def show(self, request: BottomSheetRequest) -> asyncio.Future[Any]:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._open.append((request, future))
        self.history.append(request)
        logger.debug("Presented bottom sheet %r", request.component_id)
        return future

    def dismiss(self, result: Any = None) -> bool:
        if not self._open:
            logger.debug("No bottom sheet to dismiss")
            return False
        request, future = self._open.pop()
        if not future.done():
            future.set_result(result)
        logger.debug("Dismissed bottom sheet %r", request.component_id)
        return True

"""
Error types for the sdui runtime.

Configuration errors are fatal and raised at load/init time. Evaluation,
construction and action-execution failures are recovered where they occur
and only reach callers through these types when strict behaviour was
requested.
"""

from __future__ import annotations

from typing import Any


class SduiError(Exception):
    """Base exception for all sdui errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.context:
            details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({details})"
        return self.message


class ConfigurationError(SduiError):
    """
    Raised when the delivered document is invalid.

    Examples:
    - Malformed page or component definitions
    - Duplicate app-state keys
    - Unknown state descriptor types
    """


class DuplicateStateKeyError(ConfigurationError):
    """Two app-state descriptors declare the same key."""

    def __init__(self, key: str):
        super().__init__(f"Duplicate state key: {key}", {"key": key})
        self.key = key


class UnknownStateTypeError(ConfigurationError):
    """A state descriptor declares a type with no parser."""

    def __init__(self, type_name: Any, key: str | None = None):
        super().__init__(f"Unknown state type: {type_name}", {"key": key})
        self.type_name = type_name


class AppStateError(SduiError):
    """Misuse of the app-state registry. Never recovered from."""


class AppStateNotInitializedError(AppStateError):
    def __init__(self) -> None:
        super().__init__("AppState must be initialized before use")


class AppStateKeyError(AppStateError):
    def __init__(self, key: str):
        super().__init__(f'State key "{key}" not found', {"key": key})
        self.key = key


class AppStateTypeError(AppStateError):
    def __init__(self, key: str, expected: type, actual: Any):
        super().__init__(
            f'Type mismatch for key "{key}"',
            {"expected": expected.__name__, "actual": type(actual).__name__},
        )
        self.key = key


class WidgetBuildError(SduiError):
    """Raised by builders for descriptors they cannot construct."""


class DispatcherError(SduiError):
    """The dispatcher is misconfigured (e.g. no processor for an action kind)."""


class NetworkError(SduiError):
    """Transport-level failure of a network request."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url} if url else None)
        self.url = url


class ExpressionError(SduiError):
    """Base for tokenizer, parser and evaluator failures."""

    def __init__(self, message: str, pos: int | None = None):
        super().__init__(message)
        self.pos = pos

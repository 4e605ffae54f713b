"""
Runtime settings.

Settings are loaded from the [runtime] section of sdui.toml, then
overridden by SDUI_* environment variables.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from sdui.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "sdui.toml"

# environment variable -> settings field
ENV_OVERRIDES = {
    "SDUI_PROJECT_ID": "project_id",
    "SDUI_BASE_URL": "base_url",
    "SDUI_LOG_LEVEL": "log_level",
}

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class RuntimeSettings(BaseModel):
    """Process-level knobs that are not part of the delivered document."""

    project_id: str = Field(default="default", description="Namespace for persisted app state")
    base_url: str | None = Field(default=None, description="Base URL joined to relative REST URLs")
    request_timeout: float = Field(default=30.0, gt=0, description="REST timeout in seconds")
    persist_path: Path | None = Field(default=None, description="JSON file backing persisted app state")
    log_level: str = Field(default="WARNING", description="Root log level for the CLI")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
        return level


def load_settings(path: Path | None = None, environ: Mapping[str, str] | None = None) -> RuntimeSettings:
    """
    Load settings from ``path`` (default ``./sdui.toml``) and the environment.

    A missing file yields defaults.

    Raises:
        ConfigurationError: the file is not valid TOML or holds invalid values.
    """
    toml_path = path or Path(DEFAULT_SETTINGS_FILE)
    data: dict[str, object] = {}
    if toml_path.exists():
        try:
            with open(toml_path, "rb") as f:
                document = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid settings file {toml_path}: {e}") from e
        data.update(document.get("runtime", {}))
    else:
        logger.debug("No settings file at %s; using defaults", toml_path)

    env = os.environ if environ is None else environ
    for variable, field in ENV_OVERRIDES.items():
        if env.get(variable):
            data[field] = env[variable]

    try:
        return RuntimeSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid runtime settings: {e}") from e

"""Tests for runtime settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from sdui.errors import ConfigurationError
from sdui.settings import RuntimeSettings, load_settings


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "absent.toml", environ={})
        assert settings == RuntimeSettings()
        assert settings.project_id == "default"
        assert settings.request_timeout == 30.0

    def test_reads_runtime_section(self, tmp_path: Path) -> None:
        path = tmp_path / "sdui.toml"
        path.write_text(
            '[runtime]\nproject_id = "shop"\nbase_url = "https://api.shop.test"\n'
            'request_timeout = 5\npersist_path = "state.json"\n'
        )
        settings = load_settings(path, environ={})
        assert settings.project_id == "shop"
        assert settings.base_url == "https://api.shop.test"
        assert settings.request_timeout == 5.0
        assert settings.persist_path == Path("state.json")

    def test_environment_overrides_file(self, tmp_path: Path) -> None:
        path = tmp_path / "sdui.toml"
        path.write_text('[runtime]\nproject_id = "shop"\n')
        settings = load_settings(path, environ={"SDUI_PROJECT_ID": "kiosk", "SDUI_LOG_LEVEL": "DEBUG"})
        assert settings.project_id == "kiosk"
        assert settings.log_level == "DEBUG"

    def test_empty_environment_value_is_ignored(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "absent.toml", environ={"SDUI_BASE_URL": ""})
        assert settings.base_url is None

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "sdui.toml"
        path.write_text("[runtime\n")
        with pytest.raises(ConfigurationError, match="Invalid settings file"):
            load_settings(path, environ={})

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "sdui.toml"
        path.write_text("[runtime]\nrequest_timeout = 0\n")
        with pytest.raises(ConfigurationError, match="Invalid runtime settings"):
            load_settings(path, environ={})

    def test_log_level_is_normalised(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "absent.toml", environ={"SDUI_LOG_LEVEL": "debug"})
        assert settings.log_level == "DEBUG"

    def test_unknown_log_level(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="unknown log level 'verbose'"):
            load_settings(tmp_path / "absent.toml", environ={"SDUI_LOG_LEVEL": "verbose"})

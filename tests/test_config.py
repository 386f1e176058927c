"""Unit tests for environment configuration and logging setup."""
import logging

import pytest
from rich.logging import RichHandler

from todopilot.config import (
    DEFAULT_DB_PATH,
    ENV_API_KEY,
    ENV_DB_PATH,
    ENV_ENABLE_TEXT_FALLBACK,
    ENV_FUNCTION_CALLING_MODE,
    ENV_MODEL,
    ENV_SIMULATOR_DELAY,
    configure_logging,
    get_db_path,
    get_simulator_delay,
    settings_from_env,
)
from todopilot.settings import AssistantSettings, FunctionCallingMode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (ENV_API_KEY, ENV_MODEL, ENV_FUNCTION_CALLING_MODE, ENV_ENABLE_TEXT_FALLBACK,
                ENV_DB_PATH, ENV_SIMULATOR_DELAY):
        monkeypatch.delenv(var, raising=False)


class TestSettingsFromEnv:
    """Tests for settings_from_env."""

    def test_no_overrides_returns_base(self):
        base = AssistantSettings(model="stored")
        assert settings_from_env(base) is base

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv(ENV_API_KEY, "sk-env")
        monkeypatch.setenv(ENV_FUNCTION_CALLING_MODE, "disabled")
        monkeypatch.setenv(ENV_ENABLE_TEXT_FALLBACK, "false")

        settings = settings_from_env(AssistantSettings(model="stored"))

        assert settings.api_key == "sk-env"
        assert settings.model == "stored"
        assert settings.function_calling_mode == FunctionCallingMode.DISABLED
        assert settings.enable_text_fallback is False

    def test_empty_variable_is_ignored(self, monkeypatch):
        monkeypatch.setenv(ENV_MODEL, "")
        assert settings_from_env(AssistantSettings(model="stored")).model == "stored"


class TestPathsAndDelays:
    """Tests for get_db_path and get_simulator_delay."""

    def test_db_path(self, monkeypatch, tmp_path):
        assert get_db_path() == DEFAULT_DB_PATH
        monkeypatch.setenv(ENV_DB_PATH, str(tmp_path / "x.db"))
        assert get_db_path() == tmp_path / "x.db"

    @pytest.mark.parametrize("value, expected", [("0", 0.0), ("2.5", 2.5), ("-1", 0.0), ("soon", 1.0)])
    def test_simulator_delay(self, monkeypatch, value, expected):
        monkeypatch.setenv(ENV_SIMULATOR_DELAY, value)
        assert get_simulator_delay() == expected


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_installs_rich_handler(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            configure_logging("debug")

            assert root.level == logging.DEBUG
            assert any(isinstance(h, RichHandler) for h in root.handlers)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

"""Runtime configuration for todopilot.

Centralizes environment variable names, tunable limits and logging setup.
The library modules only obtain loggers; handlers are installed here and
only by entry points (the CLI).
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .settings.models import AssistantSettings

# Environment variables
ENV_API_KEY = "TODOPILOT_API_KEY"
ENV_API_BASE_URL = "TODOPILOT_API_BASE_URL"
ENV_MODEL = "TODOPILOT_MODEL"
ENV_PROVIDER = "TODOPILOT_PROVIDER"
ENV_FUNCTION_CALLING_MODE = "TODOPILOT_FUNCTION_CALLING_MODE"
ENV_ENABLE_TEXT_FALLBACK = "TODOPILOT_ENABLE_TEXT_FALLBACK"
ENV_TEMPERATURE = "TODOPILOT_TEMPERATURE"
ENV_MAX_TOKENS = "TODOPILOT_MAX_TOKENS"
ENV_DB_PATH = "TODOPILOT_DB_PATH"
ENV_LOG_LEVEL = "TODOPILOT_LOG_LEVEL"
ENV_SIMULATOR_DELAY = "TODOPILOT_SIMULATOR_DELAY"

DEFAULT_DB_PATH = Path.home() / ".todopilot" / "todopilot.db"

# Simulator
SIMULATOR_DELAY_SECONDS = 1.0  # Artificial latency of local replies

# Prompt context limits
MAX_CONTEXT_TASKS = 50  # Tasks serialized into the system prompt
MAX_TOOL_ROUNDS = 5  # Requests per reply while the model queries the task list
RAW_SAMPLE_LENGTH = 500  # Characters of raw reply kept for diagnostics

# Remote calls
REQUEST_TIMEOUT_SECONDS = 60.0

# Maps settings fields to the environment variables that override them
_SETTINGS_ENV = {
    "api_key": ENV_API_KEY,
    "api_base_url": ENV_API_BASE_URL,
    "model": ENV_MODEL,
    "provider": ENV_PROVIDER,
    "function_calling_mode": ENV_FUNCTION_CALLING_MODE,
    "enable_text_fallback": ENV_ENABLE_TEXT_FALLBACK,
    "temperature": ENV_TEMPERATURE,
    "max_tokens": ENV_MAX_TOKENS,
}


def load_environment() -> None:
    """Load variables from a .env file in the working directory, if any."""
    load_dotenv()


def settings_from_env(base: AssistantSettings | None = None) -> AssistantSettings:
    """Overlay environment variables onto settings.

    Only variables that are set (and non-empty) override the base values,
    so stored settings stay in effect for everything the environment does
    not mention.

    Args:
        base: Settings to start from (defaults if None)

    Returns:
        New validated settings instance
    """
    current = base or AssistantSettings()
    overrides = {
        field: os.environ[var]
        for field, var in _SETTINGS_ENV.items()
        if os.environ.get(var)
    }
    if not overrides:
        return current
    return AssistantSettings.model_validate({**current.model_dump(), **overrides})


def get_db_path() -> Path:
    """Database path for the SQLite stores."""
    value = os.getenv(ENV_DB_PATH)
    return Path(value).expanduser() if value else DEFAULT_DB_PATH


def get_simulator_delay() -> float:
    """Artificial delay of the local simulator in seconds."""
    value = os.getenv(ENV_SIMULATOR_DELAY)
    if value is None:
        return SIMULATOR_DELAY_SECONDS
    try:
        return max(0.0, float(value))
    except ValueError:
        return SIMULATOR_DELAY_SECONDS


def configure_logging(level: str | int | None = None, console: Console | None = None) -> None:
    """Install a Rich log handler on the root logger.

    Args:
        level: Log level name or number (defaults to TODOPILOT_LOG_LEVEL or WARNING)
        console: Optional Rich console to log to (stderr by default)
    """
    if level is None:
        level = os.getenv(ENV_LOG_LEVEL, "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # SDK transports are chatty at DEBUG
    for noisy in ("httpx", "httpcore", "openai", "google_genai"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

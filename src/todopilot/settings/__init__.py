"""Settings store module for todopilot."""

from .base import SettingsStore
from .factory import create_settings_store
from .models import AssistantSettings, FunctionCallingMode

__all__ = [
    "AssistantSettings",
    "FunctionCallingMode",
    "SettingsStore",
    "create_settings_store",
]

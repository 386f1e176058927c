"""In-memory settings store backend.

Data is lost when the application exits.
"""

from .base import SettingsStore
from .models import AssistantSettings


class InMemorySettingsStore(SettingsStore):
    """In-memory settings store (session-only)."""

    def __init__(self, settings: AssistantSettings | None = None):
        self._settings = settings or AssistantSettings()

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    async def get(self) -> AssistantSettings:
        """Return a copy so callers cannot mutate the stored settings."""
        return self._settings.model_copy()

    async def save(self, settings: AssistantSettings) -> None:
        self._settings = settings.model_copy()

    @property
    def backend_type(self) -> str:
        return "memory"

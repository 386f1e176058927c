"""Abstract base class for settings store backends."""

from abc import ABC, abstractmethod

from .models import AssistantSettings


class SettingsStore(ABC):
    """Abstract settings store.

    Settings are read at the start of every assistant request, so a saved
    change takes effect on the next request.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the settings backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the settings backend gracefully."""

    @abstractmethod
    async def get(self) -> AssistantSettings:
        """Load the current settings (defaults when nothing is stored)."""

    @abstractmethod
    async def save(self, settings: AssistantSettings) -> None:
        """Persist settings."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def test_connection(self, settings: AssistantSettings | None = None) -> bool:
        """Check that the remote endpoint accepts the configured credential.

        Args:
            settings: Settings to test (defaults to the stored settings)

        Returns:
            True if the endpoint answered successfully
        """
        from ..assistant.diagnostics import check_connection

        return await check_connection(settings or await self.get())

    async def __aenter__(self) -> "SettingsStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

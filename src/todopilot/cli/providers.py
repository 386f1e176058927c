"""Store factory functions for CLI.

Centralizes creation of the task and settings stores from environment variables.
Hides configuration details from command implementations.
"""

from ..config import get_db_path, settings_from_env
from ..settings import AssistantSettings, SettingsStore, create_settings_store
from ..tasks import TaskStore, create_task_store


class EnvSettingsStore(SettingsStore):
    """Settings store that overlays TODOPILOT_* environment variables.

    Reads go through settings_from_env on every call, so the session still
    picks up saved changes on its next request. Writes go to the wrapped
    store unchanged.
    """

    def __init__(self, inner: SettingsStore):
        self._inner = inner

    async def connect(self) -> None:
        await self._inner.connect()

    async def disconnect(self) -> None:
        await self._inner.disconnect()

    async def get(self) -> AssistantSettings:
        return settings_from_env(await self._inner.get())

    async def save(self, settings: AssistantSettings) -> None:
        await self._inner.save(settings)

    @property
    def backend_type(self) -> str:
        return self._inner.backend_type


def get_task_store() -> TaskStore:
    """Create the task store.

    Environment variables:
        TODOPILOT_DB_PATH: SQLite database file (default: ~/.todopilot/todopilot.db)
    """
    return create_task_store("sqlite", path=get_db_path())


def get_settings_store(overlay_env: bool = True) -> SettingsStore:
    """Create the settings store.

    Args:
        overlay_env: Apply TODOPILOT_* environment overrides on read

    Environment variables:
        TODOPILOT_DB_PATH: SQLite database file (default: ~/.todopilot/todopilot.db)
    """
    store = create_settings_store("sqlite", path=get_db_path())
    return EnvSettingsStore(store) if overlay_env else store

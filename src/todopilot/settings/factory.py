"""Factory for creating settings store backends."""

from typing import Any

from .base import SettingsStore


def create_settings_store(
    backend: str = "memory",
    **kwargs: Any
) -> SettingsStore:
    """Create a settings store backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For memory:
                - settings: AssistantSettings | None (initial settings)
            For sqlite:
                - path: str | Path (database file)

    Returns:
        SettingsStore instance (not yet connected)

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemorySettingsStore
        return InMemorySettingsStore(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteSettingsStore
        return SQLiteSettingsStore(**kwargs)

    raise ValueError(
        f"Unsupported settings store backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )

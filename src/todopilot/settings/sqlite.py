"""SQLite settings store backend.

Keeps each setting as a row of a key/value table so that new settings
can be added without schema migrations.
"""

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
from pydantic import ValidationError

from .base import SettingsStore
from .models import AssistantSettings


class SQLiteSettingsStore(SettingsStore):
    """SQLite-backed settings store."""

    def __init__(self, path: str | Path = "./todopilot.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database connection and create the schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLiteSettingsStore is not connected; call connect() first")
        return self._connection

    async def get(self) -> AssistantSettings:
        """Load settings, falling back to defaults for missing or invalid keys."""
        conn = self._require_connection()
        async with conn.execute("SELECT key, value FROM settings") as cursor:
            rows = await cursor.fetchall()

        stored = {
            key: value
            for key, value in rows
            if key in AssistantSettings.model_fields
        }
        try:
            return AssistantSettings.model_validate(stored)
        except ValidationError:
            # Keep the valid keys only
            valid = {}
            for key, value in stored.items():
                try:
                    AssistantSettings.model_validate({key: value})
                except ValidationError:
                    continue
                valid[key] = value
            return AssistantSettings.model_validate(valid)

    async def save(self, settings: AssistantSettings) -> None:
        """Upsert every setting."""
        conn = self._require_connection()
        now = datetime.now(timezone.utc).isoformat()

        for key, value in settings.model_dump(mode="json").items():
            if value is None:
                await conn.execute("DELETE FROM settings WHERE key = ?", (key,))
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            await conn.execute(
                """
                INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, str(value), now),
            )
        await conn.commit()

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path

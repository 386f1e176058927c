"""SQLite task store backend.

Provides persistent task storage using a SQLite database file.
Uses aiosqlite for async access. Every write is committed on its own so a
task that was created survives a later failure in the same batch.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

from .base import TaskStore
from .models import Priority, Task, TaskFilter, TaskStatus, TaskUpdate

_COLUMNS = "id, text, completed, status, priority, created_at, updated_at"


class SQLiteTaskStore(TaskStore):
    """SQLite-backed task store.

    Stores tasks in a single table of a SQLite database file.
    """

    def __init__(self, path: str | Path = "./todopilot.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database connection and create the schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._create_schema()

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS todos (
                id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                completed INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'pending',
                priority TEXT NOT NULL DEFAULT 'low',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_todos_status
            ON todos(status)
        """)

        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLiteTaskStore is not connected; call connect() first")
        return self._connection

    @staticmethod
    def _row_to_task(row: tuple) -> Task:
        task_id, text, completed, status, priority, created_at, updated_at = row
        return Task(
            id=task_id,
            text=text,
            completed=bool(completed),
            status=TaskStatus(status),
            priority=Priority(priority),
            created_at=datetime.fromisoformat(created_at),
            updated_at=datetime.fromisoformat(updated_at),
        )

    async def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        """List tasks in creation order."""
        conn = self._require_connection()
        sql = f"SELECT {_COLUMNS} FROM todos WHERE 1=1"
        params: list = []

        if task_filter is not None:
            if task_filter.status is not None:
                sql += " AND status = ?"
                params.append(task_filter.status.value)
            if task_filter.completed is not None:
                sql += " AND completed = ?"
                params.append(1 if task_filter.completed else 0)
            if task_filter.priority is not None:
                sql += " AND priority = ?"
                params.append(task_filter.priority.value)
            if task_filter.search:
                sql += " AND text LIKE ?"
                params.append(f"%{task_filter.search}%")

        sql += " ORDER BY rowid"

        async with conn.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def get_task(self, task_id: str) -> Task | None:
        conn = self._require_connection()
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM todos WHERE id = ?", (task_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_task(row) if row else None

    async def create_task(self, text: str, priority: Priority = Priority.LOW) -> Task:
        """Insert a task and commit immediately."""
        if not text or not text.strip():
            raise ValueError("Task text must not be blank")
        conn = self._require_connection()
        task = Task(text=text.strip(), priority=priority)

        await conn.execute(
            f"INSERT INTO todos ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                task.id,
                task.text,
                0,
                task.status.value,
                task.priority.value,
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
            ),
        )
        await conn.commit()
        return task

    async def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        conn = self._require_connection()
        current = await self.get_task(task_id)
        if current is None:
            raise KeyError(f"Task not found: {task_id}")

        task = update.apply(current)
        await conn.execute(
            """
            UPDATE todos
            SET text = ?, completed = ?, status = ?, priority = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                task.text,
                1 if task.completed else 0,
                task.status.value,
                task.priority.value,
                task.updated_at.isoformat(),
                task_id,
            ),
        )
        await conn.commit()
        return task

    async def delete_task(self, task_id: str) -> bool:
        conn = self._require_connection()
        cursor = await conn.execute("DELETE FROM todos WHERE id = ?", (task_id,))
        await conn.commit()
        return cursor.rowcount > 0

    async def delete_completed(self) -> int:
        conn = self._require_connection()
        cursor = await conn.execute(
            "DELETE FROM todos WHERE status = ?", (TaskStatus.COMPLETED.value,)
        )
        await conn.commit()
        return cursor.rowcount

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path

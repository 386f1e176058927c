"""Abstract base class for task store backends.

This module defines the interface the assistant uses to read and create
tasks. The abstraction hides:
- Storage format (dict, SQLite, etc.)
- Persistence mechanism (file, database, in-memory)
- Connection management
"""

import logging
from abc import ABC, abstractmethod

from ..errors import BatchCreateError
from .models import Priority, ProposedTask, Task, TaskFilter, TaskStatistics, TaskUpdate

logger = logging.getLogger(__name__)


class TaskStore(ABC):
    """Abstract task store.

    Provides a unified interface for task records across backends.
    Each created task is durable on its own; batch creation is built on
    single creation and reports partial failure instead of rolling back.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store backend gracefully."""

    @abstractmethod
    async def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        """List tasks in creation order, optionally filtered."""

    @abstractmethod
    async def get_task(self, task_id: str) -> Task | None:
        """Retrieve a task by ID, or None if missing."""

    @abstractmethod
    async def create_task(self, text: str, priority: Priority = Priority.LOW) -> Task:
        """Create and persist a single pending task.

        Raises:
            ValueError: If the text is blank
        """

    @abstractmethod
    async def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        """Apply a partial update to a task.

        Raises:
            KeyError: If the task does not exist
        """

    @abstractmethod
    async def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns True if deleted, False if not found."""

    @abstractmethod
    async def delete_completed(self) -> int:
        """Delete all completed tasks and return how many were removed."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def batch_create(self, proposed: list[ProposedTask]) -> list[Task]:
        """Create several tasks as one logical batch.

        Every item is attempted. Items that fail do not undo the ones that
        succeeded.

        Args:
            proposed: Tasks to create, in order

        Returns:
            The created tasks, in the same order

        Raises:
            BatchCreateError: If at least one item failed
        """
        created: list[Task] = []
        failures: list[tuple[ProposedTask, str]] = []

        for item in proposed:
            try:
                created.append(await self.create_task(item.text, item.priority))
            except Exception as e:
                logger.warning("Failed to create task %r: %s", item.text, e)
                failures.append((item, str(e)))

        if failures:
            raise BatchCreateError(created, failures)
        return created

    async def statistics(self) -> TaskStatistics:
        """Get task counts per status."""
        return TaskStatistics.from_tasks(await self.list_tasks())

    async def __aenter__(self) -> "TaskStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

"""Task store module for todopilot.

Provides the task records the assistant reads as context and creates
from proposed tasks.
"""

from .base import TaskStore
from .factory import create_task_store
from .models import (
    Priority,
    ProposedTask,
    Task,
    TaskFilter,
    TaskStatistics,
    TaskStatus,
    TaskUpdate,
)

__all__ = [
    "Priority",
    "ProposedTask",
    "Task",
    "TaskFilter",
    "TaskStatistics",
    "TaskStatus",
    "TaskStore",
    "TaskUpdate",
    "create_task_store",
]

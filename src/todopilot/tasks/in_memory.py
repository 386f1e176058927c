"""In-memory task store backend.

Simple dict-based storage for session-only tasks.
Data is lost when the application exits.
"""

from .base import TaskStore
from .models import Priority, Task, TaskFilter, TaskStatus, TaskUpdate


class InMemoryTaskStore(TaskStore):
    """In-memory task store (session-only).

    Suitable for the local simulator, single-session use or testing.
    """

    def __init__(self, tasks: list[Task] | None = None):
        self._tasks: dict[str, Task] = {task.id: task for task in tasks or []}

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    async def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        """List tasks (copies, so callers get a snapshot)."""
        return [
            task.model_copy()
            for task in self._tasks.values()
            if task_filter is None or task_filter.matches(task)
        ]

    async def get_task(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        return task.model_copy() if task else None

    async def create_task(self, text: str, priority: Priority = Priority.LOW) -> Task:
        """Create a task."""
        if not text or not text.strip():
            raise ValueError("Task text must not be blank")
        task = Task(text=text.strip(), priority=priority)
        self._tasks[task.id] = task
        return task.model_copy()

    async def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        """Update a task."""
        if task_id not in self._tasks:
            raise KeyError(f"Task not found: {task_id}")
        task = update.apply(self._tasks[task_id])
        self._tasks[task_id] = task
        return task.model_copy()

    async def delete_task(self, task_id: str) -> bool:
        return self._tasks.pop(task_id, None) is not None

    async def delete_completed(self) -> int:
        done = [tid for tid, task in self._tasks.items() if task.status == TaskStatus.COMPLETED]
        for tid in done:
            del self._tasks[tid]
        return len(done)

    @property
    def backend_type(self) -> str:
        return "memory"

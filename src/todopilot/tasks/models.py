"""Data models for the task store.

These models define task records and the requests that create or change
them, independent of the storage backend used.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value: object) -> "TaskStatus | None":
        # Accept the names used by older clients
        aliases = {
            "active": cls.IN_PROGRESS,
            "in-progress": cls.IN_PROGRESS,
            "archived": cls.CANCELLED,
            "done": cls.COMPLETED,
        }
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class Priority(str, Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def _missing_(cls, value: object) -> "Priority | None":
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


class Task(BaseModel):
    """A task record owned by the task store.

    Invariant: completed is True exactly when status is COMPLETED.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    text: str = Field(min_length=1, description="Task content")
    completed: bool = False
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.LOW
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def check_completion(self) -> "Task":
        """Ensure the completed flag and status agree."""
        if self.completed != (self.status == TaskStatus.COMPLETED):
            raise ValueError(
                f"completed={self.completed} is inconsistent with status={self.status.value}"
            )
        return self

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()

    def to_context(self) -> dict[str, Any]:
        """Compact form sent to the model: no ids, no timestamps."""
        return {
            "text": self.text,
            "completed": self.completed,
            "status": self.status.value,
        }


class ProposedTask(BaseModel):
    """A task suggested by the assistant that is not persisted yet."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1, description="Task content")
    priority: Priority = Priority.LOW
    status: TaskStatus = TaskStatus.PENDING
    completed: bool = False

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip whitespace and reject blank text."""
        v = v.strip()
        if not v:
            raise ValueError("text must not be blank")
        return v


class TaskUpdate(BaseModel):
    """Partial update of a task. Unset fields are left unchanged."""

    text: str | None = None
    completed: bool | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None

    def apply(self, task: Task) -> Task:
        """Return a copy of task with this update applied.

        A change to only one of completed/status is reconciled with the
        other so the result still satisfies the Task invariant.
        """
        data = task.model_dump()
        changes = self.model_dump(exclude_none=True)
        data.update(changes)

        if "completed" in changes and "status" not in changes:
            if self.completed:
                data["status"] = TaskStatus.COMPLETED
            elif task.status == TaskStatus.COMPLETED:
                data["status"] = TaskStatus.PENDING
        elif "status" in changes and "completed" not in changes:
            data["completed"] = self.status == TaskStatus.COMPLETED

        data["updated_at"] = _utcnow()
        return Task.model_validate(data)


class TaskFilter(BaseModel):
    """Filter for listing tasks. All set fields must match."""

    status: TaskStatus | None = None
    completed: bool | None = None
    priority: Priority | None = None
    search: str | None = Field(default=None, description="Case-insensitive substring of the text")

    def matches(self, task: Task) -> bool:
        """Check whether a task passes this filter."""
        if self.status is not None and task.status != self.status:
            return False
        if self.completed is not None and task.completed != self.completed:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.search and self.search.lower() not in task.text.lower():
            return False
        return True


class TaskStatistics(BaseModel):
    """Counts of tasks per status."""

    total: int = Field(default=0, ge=0)
    completed: int = Field(default=0, ge=0)
    pending: int = Field(default=0, ge=0)
    in_progress: int = Field(default=0, ge=0)
    cancelled: int = Field(default=0, ge=0)

    @classmethod
    def from_tasks(cls, tasks: list[Task]) -> "TaskStatistics":
        """Compute statistics for a list of tasks."""
        counts = {status: 0 for status in TaskStatus}
        for task in tasks:
            counts[task.status] += 1
        return cls(
            total=len(tasks),
            completed=counts[TaskStatus.COMPLETED],
            pending=counts[TaskStatus.PENDING],
            in_progress=counts[TaskStatus.IN_PROGRESS],
            cancelled=counts[TaskStatus.CANCELLED],
        )

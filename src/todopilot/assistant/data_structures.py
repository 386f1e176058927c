"""Data structures for the assistant module."""

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..llm.models import Dialect
from ..tasks.models import ProposedTask, Task


class ReplyKind(str, Enum):
    """What an assistant reply is."""

    CHAT = "chat"
    GENERATION = "generation"
    SUMMARY = "summary"
    ERROR = "error"


class ChatRole(str, Enum):
    """Author of a transcript message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class OperatingMode(str, Enum):
    """Which backend answers a request."""

    LOCAL = "local"    # Heuristic simulator, no network
    REMOTE = "remote"  # LLM endpoint


class SessionState(str, Enum):
    """Chat session states. AWAITING_REPLY is the single pending request."""

    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class ChatMessage(BaseModel):
    """A message of the live transcript.

    Attributes:
        id: Unique identifier within the session
        role: Author of the message
        content: Display text
        kind: Reply kind, set on assistant messages only
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: ChatRole
    content: str
    kind: ReplyKind | None = None

    def __str__(self) -> str:
        """String representation of ChatMessage."""
        return self.content


class AssistantReply(BaseModel):
    """Result of one assistant turn.

    A tagged union on kind: proposed_tasks is non-empty exactly when kind
    is GENERATION. Producers may emit inconsistent replies; classify()
    rebuilds them before anything else sees them.

    Attributes:
        text: Text shown to the user
        kind: Reply classification
        proposed_tasks: Tasks to materialize (generation only)
        warnings: Non-fatal notes surfaced as a system message
    """

    model_config = ConfigDict(frozen=True)

    text: str
    kind: ReplyKind = ReplyKind.CHAT
    proposed_tasks: list[ProposedTask] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def chat(cls, text: str, warnings: list[str] | None = None) -> "AssistantReply":
        return cls(text=text, kind=ReplyKind.CHAT, warnings=warnings or [])

    @classmethod
    def error(cls, text: str) -> "AssistantReply":
        return cls(text=text, kind=ReplyKind.ERROR)


class TaskFailure(BaseModel):
    """A proposed task the store did not create."""

    model_config = ConfigDict(frozen=True)

    task: ProposedTask
    reason: str


class MaterializationResult(BaseModel):
    """Outcome of persisting the proposed tasks of a generation reply."""

    requested: int = Field(ge=0)
    created: list[Task] = Field(default_factory=list)
    failures: list[TaskFailure] = Field(default_factory=list)

    @property
    def status(self) -> str:
        """'success', 'partial' or 'failed'."""
        if not self.failures:
            return "success"
        if self.created:
            return "partial"
        return "failed"

    def system_message(self) -> str:
        """Transcript text announcing the outcome."""
        count = len(self.created)
        if self.status == "success":
            return f"✓ 已自动添加 {count} 个任务到列表"

        reason = self.failures[0].reason or "未知错误"
        if self.status == "partial":
            return (
                f"⚠️ 已添加 {count}/{self.requested} 个任务，"
                f"{len(self.failures)} 个任务添加失败（{reason}）。请检查任务列表后重试。"
            )
        return f"✗ 任务添加失败（0/{self.requested}）：{reason}。请稍后重试。"


class TurnResult(BaseModel):
    """Everything one submit() produced.

    Attributes:
        user_message: The appended user message
        reply: The classified reply
        messages: Messages appended this turn, in order (user message first)
        mode: Backend that answered
        dialect: Dialect that produced the remote reply, if any
        materialization: Task creation outcome for generation replies
    """

    user_message: ChatMessage
    reply: AssistantReply
    messages: list[ChatMessage]
    mode: OperatingMode
    dialect: Dialect | None = None
    materialization: MaterializationResult | None = None


class FunctionCallTestResult(BaseModel):
    """Report of the function-call diagnostic.

    Attributes:
        success: Whether a call was detected and its tasks created
        message: One-line verdict
        api_format_detected: Dialect that answered ('tools', 'functions', 'text' or 'none')
        function_called: Whether an add_tasks call was detected
        function_name: Name of the detected function
        tasks_created: Number of tasks persisted
        raw_response_sample: Start of the raw reply
        recommendations: Remediation hints
    """

    success: bool
    message: str
    api_format_detected: str = "none"
    function_called: bool = False
    function_name: str | None = None
    tasks_created: int = 0
    raw_response_sample: str | None = None
    recommendations: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

"""todopilot: AI task-assistant orchestration."""

from .assistant import ChatSession, FunctionCallTestResult, LocalSimulator, RemoteAdapter
from .errors import (
    AiCallError,
    AssistantError,
    BatchCreateError,
    DialectMismatchError,
    MalformedReplyError,
    ProviderHTTPError,
    SessionBusyError,
)
from .settings import AssistantSettings, create_settings_store
from .tasks import create_task_store

__version__ = "0.1.0"

__all__ = [
    "AiCallError",
    "AssistantError",
    "AssistantSettings",
    "BatchCreateError",
    "ChatSession",
    "DialectMismatchError",
    "FunctionCallTestResult",
    "LocalSimulator",
    "MalformedReplyError",
    "ProviderHTTPError",
    "RemoteAdapter",
    "SessionBusyError",
    "create_settings_store",
    "create_task_store",
]

"""Assistant module for todopilot.

Turns free-text input into chat replies, task decompositions or summaries,
using either the local simulator or a remote LLM endpoint.
"""

from .adapter import NegotiationResult, RemoteAdapter
from .classifier import classify
from .data_structures import (
    AssistantReply,
    ChatMessage,
    ChatRole,
    FunctionCallTestResult,
    MaterializationResult,
    OperatingMode,
    ReplyKind,
    SessionState,
    TaskFailure,
    TurnResult,
)
from .diagnostics import check_connection, run_function_call_diagnostic
from .dialects import (
    DialectOutcome,
    DialectStrategy,
    NotApplicable,
    StructuredCallStrategy,
    TextStrategy,
    build_strategies,
)
from .materializer import ActionMaterializer
from .mode import select_mode
from .parsing import extract_inline_calls, parse_reply, strip_code_fences
from .session import ChatSession
from .simulator import LocalSimulator, SimulatorRule
from .tools import TaskQueryRunner

__all__ = [
    "ActionMaterializer",
    "AssistantReply",
    "ChatMessage",
    "ChatRole",
    "ChatSession",
    "DialectOutcome",
    "DialectStrategy",
    "FunctionCallTestResult",
    "LocalSimulator",
    "MaterializationResult",
    "NegotiationResult",
    "NotApplicable",
    "OperatingMode",
    "RemoteAdapter",
    "ReplyKind",
    "SessionState",
    "SimulatorRule",
    "StructuredCallStrategy",
    "TaskFailure",
    "TaskQueryRunner",
    "TextStrategy",
    "TurnResult",
    "build_strategies",
    "check_connection",
    "classify",
    "extract_inline_calls",
    "parse_reply",
    "run_function_call_diagnostic",
    "select_mode",
    "strip_code_fences",
]

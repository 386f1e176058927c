import json
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Dialect(str, Enum):
    """Wire format used to request structured function invocation."""

    TOOLS = "tools"          # Modern: tools / tool_choice, tool_calls in reply
    FUNCTIONS = "functions"  # Legacy: functions / function_call
    TEXT = "text"            # No structured call; JSON contract in plain text


class ToolSpec(BaseModel):
    """A function the model may call, described by a JSON schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, Any] = Field(description="JSON schema of the arguments object")

    def to_function_schema(self) -> dict[str, Any]:
        """Function definition shared by both OpenAI dialects."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


class ToolCall(BaseModel):
    """A structured call returned by the model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ChatMessage(BaseModel):
    """Represents a chat message sent to a provider.

    Besides plain turns, an assistant message may carry the calls it made,
    and a 'tool' message carries the result of one of those calls.
    """

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', 'system' or 'tool'")
    content: str = Field(description="Content of the message")
    tool_calls: list[ToolCall] = Field(default_factory=list, description="Calls made by an assistant message")
    tool_call_id: str | None = Field(default=None, description="Call answered by a tool message")
    name: str | None = Field(default=None, description="Function answered by a tool message")

    @classmethod
    def tool_result(cls, call: ToolCall, result: dict[str, Any]) -> "ChatMessage":
        """Tool message answering a call with a JSON result."""
        return cls(
            role="tool",
            content=json.dumps(result, ensure_ascii=False),
            tool_call_id=call.id,
            name=call.name,
        )


def parse_arguments(arguments: str | dict[str, Any] | None) -> dict[str, Any]:
    """Decode call arguments; malformed JSON yields an empty dict."""
    if isinstance(arguments, dict):
        return arguments
    if not arguments:
        return {}
    try:
        value = json.loads(arguments)
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    dialect: Dialect = Field(default=Dialect.TEXT, description="Dialect the request used")
    tool_calls: list[ToolCall] = Field(default_factory=list, description="Structured calls in the reply")
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )
    raw: str | None = Field(default=None, description="Serialized raw reply for diagnostics")

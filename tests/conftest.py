"""Pytest configuration and shared fixtures."""
import os
from typing import Any

import pytest

from todopilot.assistant import LocalSimulator
from todopilot.llm import ChatMessage, Dialect, LLMProvider, LLMResponse, ToolCall, ToolSpec
from todopilot.settings import AssistantSettings
from todopilot.settings.in_memory import InMemorySettingsStore
from todopilot.tasks.in_memory import InMemoryTaskStore


class FakeProvider(LLMProvider):
    """Scripted LLMProvider that never touches the network.

    Args:
        replies: Per-dialect reply; an exception instance is raised instead.
            A list is answered in order, its last entry repeating
        dialects: Dialects the provider claims to support
    """

    def __init__(
        self,
        replies: dict[Dialect, LLMResponse | Exception | list[LLMResponse | Exception]] | None = None,
        dialects: frozenset[Dialect] = frozenset({Dialect.TOOLS, Dialect.FUNCTIONS}),
        ping_error: Exception | None = None,
    ):
        self.replies = replies or {}
        self.dialects = dialects
        self.ping_error = ping_error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    @property
    def model(self) -> str:
        return "fake-model"

    @property
    def supported_dialects(self) -> frozenset[Dialect]:
        return self.dialects

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        tools: list[ToolSpec] | None = None,
        dialect: Dialect = Dialect.TEXT,
        **kwargs: Any
    ) -> LLMResponse:
        self.calls.append({"messages": list(messages), "tools": tools, "dialect": dialect})
        reply = self.replies.get(dialect, text_response(""))
        if isinstance(reply, list):
            reply = reply.pop(0) if len(reply) > 1 else reply[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def ping(self) -> None:
        if self.ping_error is not None:
            raise self.ping_error

    async def close(self) -> None:
        self.closed = True

    @property
    def dialects_tried(self) -> list[Dialect]:
        return [call["dialect"] for call in self.calls]


def text_response(content: str, dialect: Dialect = Dialect.TEXT) -> LLMResponse:
    """LLMResponse carrying plain content."""
    return LLMResponse(content=content, model="fake-model", dialect=dialect, raw=content)


def call_response(dialect: Dialect, *tasks: str, content: str = "") -> LLMResponse:
    """LLMResponse with one native add_tasks call."""
    return LLMResponse(
        content=content,
        model="fake-model",
        dialect=dialect,
        tool_calls=[ToolCall(name="add_tasks", arguments={"tasks": [{"text": t} for t in tasks]})],
        raw='{"tool_calls": "..."}',
    )


def query_response(dialect: Dialect, name: str = "query_tasks", **arguments: Any) -> LLMResponse:
    """LLMResponse with one native read-only call."""
    return LLMResponse(
        content="",
        model="fake-model",
        dialect=dialect,
        tool_calls=[ToolCall(name=name, arguments=arguments)],
        raw='{"tool_calls": "..."}',
    )


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "openai": os.getenv("OPENAI_API_KEY"),
        "gemini": os.getenv("GEMINI_API_KEY"),
    }


@pytest.fixture
def task_store():
    """Empty in-memory task store."""
    return InMemoryTaskStore()


@pytest.fixture
def settings_store():
    """In-memory settings store with defaults (no API key, simulator mode)."""
    return InMemorySettingsStore()


@pytest.fixture
def remote_settings():
    """Settings that select the remote adapter."""
    return AssistantSettings(api_key="sk-test")


@pytest.fixture
def simulator():
    """Local simulator without the artificial delay."""
    return LocalSimulator(delay=0)


@pytest.fixture
def fake_provider():
    """Provider answering every dialect with an empty text reply."""
    return FakeProvider()

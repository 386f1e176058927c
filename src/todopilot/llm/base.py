import re
from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, Dialect, LLMResponse, ToolSpec

# A 4xx error rejects the structured-call format when it names one of its request parameters
_DIALECT_SUBJECT_RE = re.compile(r"\b(tools|tool_choice|functions|function_call|function[ _]calling)\b")
_DIALECT_REJECTIONS = (
    "not support",
    "unsupported",
    "unknown",
    "unrecognized",
    "unrecognised",
    "not allowed",
    "not permitted",
    "not available",
    "not enabled",
    "extra",
    "invalid parameter",
)
_DIALECT_STATUSES = (400, 404, 422)


def is_dialect_mismatch(status: int | None, message: str) -> bool:
    """Check whether an error rejects the tools/functions request format.

    Args:
        status: HTTP status code (None if unknown)
        message: Error message from the provider

    Returns:
        True if the error names the tools or functions parameters as unsupported
    """
    if status not in _DIALECT_STATUSES:
        return False
    lowered = message.lower()
    return (
        _DIALECT_SUBJECT_RE.search(lowered) is not None
        and any(word in lowered for word in _DIALECT_REJECTIONS)
    )


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    This module hides the design decision of which LLM provider to use.
    Implementations must handle provider-specific details like:
    - API client setup and authentication
    - Request/response format conversion, including the structured-call dialects
    - Translating SDK errors into todopilot.errors

    Error contract:
    - AiCallError when no reply was received (network, timeout)
    - DialectMismatchError when the provider rejects the requested dialect
    - ProviderHTTPError for any other non-2xx status or error payload

    Supports async context manager protocol for proper resource cleanup:
        async with provider:
            response = await provider.chat_completion(messages)
        # Automatically cleaned up
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Get the default model name."""

    @property
    @abstractmethod
    def supported_dialects(self) -> frozenset[Dialect]:
        """Structured-call dialects this provider can send (TEXT is always supported)."""

    @abstractmethod
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
        """Generate a chat completion.

        Args:
            messages: List of chat messages forming the conversation history
            model: Model to use (None uses provider's default)
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate
            tools: Functions offered to the model (ignored for Dialect.TEXT)
            dialect: Wire format used to offer the tools
            **kwargs: Provider-specific parameters

        Returns:
            LLMResponse containing generated content and any tool calls

        Raises:
            AiCallError: No reply received
            DialectMismatchError: The dialect was rejected
            ProviderHTTPError: Other provider errors
        """

    @abstractmethod
    async def ping(self) -> None:
        """Make a lightweight authenticated request.

        Raises:
            AiCallError: No reply received
            ProviderHTTPError: The endpoint rejected the request
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "LLMProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise

import json
import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from ...errors import AiCallError, DialectMismatchError, ProviderHTTPError
from ..base import LLMProvider, is_dialect_mismatch
from ..models import ChatMessage, Dialect, LLMResponse, ToolCall, ToolSpec, parse_arguments

logger = logging.getLogger(__name__)


def _status_error_message(error: openai.APIStatusError) -> str:
    """Extract the upstream message from an error body, if there is one."""
    body = error.body
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
        if isinstance(inner, str):
            return inner
    return error.message


def _payload_error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def _to_openai_message(message: ChatMessage, dialect: Dialect) -> dict[str, Any]:
    """Convert a ChatMessage, writing calls and results in the request dialect."""
    if message.role == "tool":
        if dialect == Dialect.FUNCTIONS:
            return {"role": "function", "name": message.name, "content": message.content}
        return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}

    converted: dict[str, Any] = {"role": message.role, "content": message.content}
    if message.tool_calls and dialect == Dialect.FUNCTIONS:
        # The legacy dialect carries a single call per message
        call = message.tool_calls[0]
        converted["function_call"] = {
            "name": call.name,
            "arguments": json.dumps(call.arguments, ensure_ascii=False),
        }
    elif message.tool_calls:
        converted["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments, ensure_ascii=False)},
            }
            for call in message.tool_calls
        ]
    return converted


class OpenAIProvider(LLMProvider):
    """OpenAI-compatible LLM provider implementation.

    Works with any endpoint that speaks the Chat Completions API
    (OpenAI, DeepSeek, Moonshot, Zhipu and self-hosted gateways).

    Hidden design decisions:
    - OpenAI API client initialization
    - Message format conversion
    - Modern (tools) and legacy (functions) call dialects
    - Error translation
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: API key, sent as a bearer token
            model: Default model to use
            base_url: Optional custom API base URL (any OpenAI-compatible endpoint)
            organization: Optional organization ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client (timeout, max_retries, ...)
        """
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    @property
    def supported_dialects(self) -> frozenset[Dialect]:
        return frozenset({Dialect.TOOLS, Dialect.FUNCTIONS})

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
        """Generate a chat completion using the Chat Completions API.

        Args:
            messages: Conversation history
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            tools: Functions offered to the model
            dialect: TOOLS sends tools/tool_choice, FUNCTIONS sends functions/function_call
            **kwargs: Additional OpenAI-specific parameters

        Returns:
            LLMResponse with generated content and tool calls
        """
        model_to_use = model or self._model
        openai_messages = [_to_openai_message(msg, dialect) for msg in messages]

        # Build request params, only including max_tokens if set
        request_params: dict[str, Any] = {
            "model": model_to_use,
            "messages": openai_messages,
            "temperature": temperature,
            **kwargs
        }
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens

        structured = bool(tools) and dialect != Dialect.TEXT
        if structured and dialect == Dialect.TOOLS:
            request_params["tools"] = [
                {"type": "function", "function": spec.to_function_schema()}
                for spec in tools
            ]
            request_params["tool_choice"] = "auto"
        elif structured and dialect == Dialect.FUNCTIONS:
            request_params["functions"] = [spec.to_function_schema() for spec in tools]
            request_params["function_call"] = "auto"

        logger.debug(
            "Chat completion request: model=%s dialect=%s tools=%d",
            model_to_use, dialect.value, len(tools or []) if structured else 0
        )

        try:
            completion = await self._client.chat.completions.create(**request_params)
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            raise AiCallError(str(e) or type(e).__name__) from e
        except openai.APIStatusError as e:
            message = _status_error_message(e)
            if structured and is_dialect_mismatch(e.status_code, message):
                raise DialectMismatchError(dialect.value, e.status_code, message) from e
            raise ProviderHTTPError(e.status_code, message) from e

        # Some gateways answer 200 with an error object instead of choices
        extra = getattr(completion, "model_extra", None) or {}
        if extra.get("error"):
            message = _payload_error_message(extra["error"])
            if structured and is_dialect_mismatch(400, message):
                raise DialectMismatchError(dialect.value, None, message)
            raise ProviderHTTPError(None, message)

        if not completion.choices:
            raise ProviderHTTPError(None, "No response choice")

        message = completion.choices[0].message
        tool_calls: list[ToolCall] = []
        for call in message.tool_calls or []:
            if call.type != "function":
                continue
            tool_calls.append(ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=parse_arguments(call.function.arguments),
            ))
        if message.function_call is not None:
            tool_calls.append(ToolCall(
                name=message.function_call.name,
                arguments=parse_arguments(message.function_call.arguments),
            ))

        usage = None
        if completion.usage:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens
            }

        return LLMResponse(
            content=message.content or "",
            model=completion.model or model_to_use,
            dialect=dialect if structured else Dialect.TEXT,
            tool_calls=tool_calls,
            usage=usage,
            raw=completion.model_dump_json(exclude_none=True),
        )

    async def ping(self) -> None:
        """List models, the cheapest authenticated call."""
        try:
            await self._client.models.list()
        except openai.APIConnectionError as e:
            raise AiCallError(str(e) or type(e).__name__) from e
        except openai.APIStatusError as e:
            raise ProviderHTTPError(e.status_code, _status_error_message(e)) from e

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()

"""Google Gemini LLM provider implementation.

Uses the official Google GenAI SDK for async chat completions.
Reference: https://github.com/googleapis/python-genai

Note: Gemini can return empty responses due to safety filtering or service issues.
This implementation includes retry logic and relaxed safety settings.
"""

import asyncio
import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ...errors import AiCallError, DialectMismatchError, ProviderHTTPError
from ..base import LLMProvider, is_dialect_mismatch
from ..models import ChatMessage, Dialect, LLMResponse, ToolCall, ToolSpec, parse_arguments

logger = logging.getLogger(__name__)

# Default safety settings - relaxed so ordinary planning text is not blocked
DEFAULT_SAFETY_SETTINGS = [
    types.SafetySetting(category="HARM_CATEGORY_HARASSMENT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_HATE_SPEECH", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_SEXUALLY_EXPLICIT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_DANGEROUS_CONTENT", threshold="BLOCK_ONLY_HIGH"),
]


def to_gemini_schema(schema: dict[str, Any]) -> types.Schema:
    """Convert a JSON schema dict to a Gemini Schema (types are upper-case there)."""
    kwargs: dict[str, Any] = {}
    if "type" in schema:
        kwargs["type"] = str(schema["type"]).upper()
    if "description" in schema:
        kwargs["description"] = schema["description"]
    if "enum" in schema:
        kwargs["enum"] = [str(v) for v in schema["enum"]]
    if "properties" in schema:
        kwargs["properties"] = {
            name: to_gemini_schema(prop) for name, prop in schema["properties"].items()
        }
    if "items" in schema:
        kwargs["items"] = to_gemini_schema(schema["items"])
    if "required" in schema:
        kwargs["required"] = list(schema["required"])
    return types.Schema(**kwargs)


class GeminiProvider(LLMProvider):
    """Google Gemini LLM provider implementation.

    Gemini has a single structured-call format (function declarations),
    exposed here as the TOOLS dialect.

    Hidden design decisions:
    - Google GenAI client initialization
    - Message format conversion
    - Retry logic for empty responses (known Gemini issue)
    - Relaxed safety settings
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str | None = None,
        max_retries: int = 3,
        timeout: float | None = None,
        **client_kwargs: Any
    ):
        """Initialize Gemini provider.

        Args:
            api_key: Google AI API key
            model: Default model (gemini-2.5-flash, gemini-2.5-pro, gemini-1.5-flash)
            base_url: Optional Gemini-compatible base URL (proxy or gateway)
            max_retries: Max retries for empty responses (default 3)
            timeout: Request timeout in seconds
            **client_kwargs: Additional kwargs for Client
        """
        self._model = model
        self._max_retries = max_retries

        http_options = None
        if base_url or timeout:
            http_options = types.HttpOptions(
                base_url=base_url,
                timeout=int(timeout * 1000) if timeout else None,
            )
        self._client = genai.Client(api_key=api_key, http_options=http_options, **client_kwargs)

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    @property
    def supported_dialects(self) -> frozenset[Dialect]:
        return frozenset({Dialect.TOOLS})

    def _convert_messages(self, messages: list[ChatMessage]) -> tuple[str | None, list[types.Content]]:
        """Convert ChatMessage list to Gemini format.

        Args:
            messages: List of chat messages

        Returns:
            Tuple of (system_instruction, contents)
        """
        system_parts = []
        contents = []

        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            elif msg.role == "user":
                contents.append(types.Content(
                    role="user",
                    parts=[types.Part(text=msg.content)]
                ))
            elif msg.role == "assistant":
                parts = [types.Part(text=msg.content)] if msg.content or not msg.tool_calls else []
                parts.extend(
                    types.Part(function_call=types.FunctionCall(id=call.id, name=call.name, args=call.arguments))
                    for call in msg.tool_calls
                )
                contents.append(types.Content(role="model", parts=parts))
            elif msg.role == "tool":
                contents.append(types.Content(
                    role="user",
                    parts=[types.Part(function_response=types.FunctionResponse(
                        id=msg.tool_call_id,
                        name=msg.name,
                        response=parse_arguments(msg.content),
                    ))]
                ))

        system_instruction = "\n\n".join(system_parts) if system_parts else None
        return system_instruction, contents

    def _extract_content(self, response) -> str:
        """Extract text content from Gemini response, handling empty responses.

        Args:
            response: Gemini GenerateContentResponse

        Returns:
            Text content or empty string
        """
        if response.candidates and len(response.candidates) > 0:
            candidate = response.candidates[0]
            if candidate.content and candidate.content.parts:
                # Function-call parts carry no text
                texts = [part.text for part in candidate.content.parts if getattr(part, "text", None)]
                if texts:
                    return "".join(texts)
        return ""

    def _extract_tool_calls(self, response) -> list[ToolCall]:
        calls = []
        for call in response.function_calls or []:
            if not call.name:
                continue
            kwargs: dict[str, Any] = {"name": call.name, "arguments": parse_arguments(call.args)}
            if call.id:
                kwargs["id"] = call.id
            calls.append(ToolCall(**kwargs))
        return calls

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
        """Generate a chat completion using Google Gemini.

        Includes retry logic for empty responses (known Gemini service issue).

        Args:
            messages: Conversation history
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            tools: Functions offered to the model
            dialect: TOOLS offers function declarations; TEXT disables calling
            **kwargs: Additional Gemini-specific parameters

        Returns:
            LLMResponse with generated content and tool calls
        """
        if tools and dialect == Dialect.FUNCTIONS:
            raise DialectMismatchError(dialect.value, None, "Gemini does not support the legacy functions dialect")

        model_to_use = model or self._model
        system_instruction, contents = self._convert_messages(messages)
        structured = bool(tools) and dialect == Dialect.TOOLS

        if structured:
            gemini_tools = [types.Tool(function_declarations=[
                types.FunctionDeclaration(
                    name=spec.name,
                    description=spec.description,
                    parameters=to_gemini_schema(spec.parameters),
                )
                for spec in tools
            ])]
            tool_config = types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(mode="AUTO")
            )
        else:
            # Mode NONE keeps the model from emitting UNEXPECTED_TOOL_CALL
            gemini_tools = None
            tool_config = types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(mode="NONE")
            )

        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction,
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            tools=gemini_tools,
            tool_config=tool_config,
            **kwargs
        )
        if max_tokens is not None:
            config.max_output_tokens = max_tokens

        logger.debug("Gemini request: model=%s dialect=%s", model_to_use, dialect.value)

        content = ""
        tool_calls: list[ToolCall] = []
        usage = None
        response = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.aio.models.generate_content(
                    model=model_to_use,
                    contents=contents,
                    config=config
                )
            except genai_errors.APIError as e:
                message = e.message or str(e)
                if structured and is_dialect_mismatch(e.code, message):
                    raise DialectMismatchError(dialect.value, e.code, message) from e
                raise ProviderHTTPError(e.code, message) from e
            except httpx.HTTPError as e:
                raise AiCallError(str(e) or type(e).__name__) from e

            if response.usage_metadata:
                usage = {
                    "prompt_tokens": response.usage_metadata.prompt_token_count or 0,
                    "completion_tokens": response.usage_metadata.candidates_token_count or 0,
                    "total_tokens": response.usage_metadata.total_token_count or 0
                }

            content = self._extract_content(response)
            tool_calls = self._extract_tool_calls(response)

            if content or tool_calls:
                break

            if attempt < self._max_retries - 1:
                logger.debug("Empty Gemini response, retrying (attempt %d)", attempt + 1)
                await asyncio.sleep(0.5 * (attempt + 1))

        return LLMResponse(
            content=content,
            model=model_to_use,
            dialect=Dialect.TOOLS if structured else Dialect.TEXT,
            tool_calls=tool_calls,
            usage=usage,
            raw=response.model_dump_json(exclude_none=True) if response is not None else None,
        )

    async def ping(self) -> None:
        """Look up the configured model."""
        try:
            await self._client.aio.models.get(model=self._model)
        except genai_errors.APIError as e:
            raise ProviderHTTPError(e.code, e.message or str(e)) from e
        except httpx.HTTPError as e:
            raise AiCallError(str(e) or type(e).__name__) from e

    async def close(self) -> None:
        """Close the Gemini client.

        Note: The Google GenAI client doesn't require explicit closing,
        but we implement this for interface consistency.
        """
        pass

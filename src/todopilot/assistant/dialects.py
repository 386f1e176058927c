"""Dialect negotiation strategies.

Remote APIs disagree on how structured function calls are requested:
modern endpoints take tools/tool_choice, older ones functions/function_call,
and some take neither. Each dialect is a strategy; the adapter tries them in
order until one produces an outcome.

Each strategy returns:
- DialectOutcome: the provider answered in this dialect
- NotApplicable: the provider cannot use this dialect, try the next one

Any other provider error propagates to the adapter.
"""

import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field

from ..config import MAX_TOOL_ROUNDS
from ..errors import DialectMismatchError
from ..llm.base import LLMProvider
from ..llm.models import ChatMessage, Dialect, LLMResponse, ToolCall, ToolSpec
from ..settings.models import AssistantSettings, FunctionCallingMode
from .data_structures import AssistantReply
from .parsing import extract_inline_calls, merge_proposed, parse_reply
from .tools import TASK_TOOLS, TOOLS, TaskQueryRunner, is_add_tasks, is_read_tool, proposed_from_calls

logger = logging.getLogger(__name__)

INLINE_CALL_WARNING = "函数调用是从模型的文本回复中解析出来的，当前接口可能不支持原生函数调用"


class NotApplicable(BaseModel):
    """A strategy that could not be used, and why."""

    model_config = ConfigDict(frozen=True)

    dialect: Dialect
    reason: str


class DialectOutcome(BaseModel):
    """A reply obtained through one dialect.

    Attributes:
        dialect: Dialect that produced the reply
        reply: Interpreted reply (not yet classified)
        response: Raw provider response
        calls: add_tasks calls found, native or inline
        calls_from_text: Whether the calls were parsed from text
    """

    model_config = ConfigDict(frozen=True)

    dialect: Dialect
    reply: AssistantReply
    response: LLMResponse
    calls: list[ToolCall] = Field(default_factory=list)
    calls_from_text: bool = False


def interpret_response(
    dialect: Dialect,
    response: LLMResponse,
    extract_inline: bool = True,
) -> DialectOutcome:
    """Turn a provider response into a reply.

    Native add_tasks calls become proposed tasks; the text content is parsed
    against the JSON contract. With extract_inline, calls written into the
    text are extracted too and a warning is attached.
    """
    calls = [call for call in response.tool_calls if is_add_tasks(call.name)]
    content = response.content
    calls_from_text = False
    warnings: list[str] = []

    if extract_inline and not calls:
        inline, content = extract_inline_calls(content)
        if inline:
            logger.warning("Parsed %d function call(s) from text (%s dialect)", len(inline), dialect.value)
            calls = inline
            calls_from_text = True
            warnings.append(INLINE_CALL_WARNING)

    reply = parse_reply(content) if content.strip() else AssistantReply.chat("")
    reply = merge_proposed(reply, proposed_from_calls(calls))
    if warnings:
        reply = reply.model_copy(update={"warnings": [*reply.warnings, *warnings]})

    return DialectOutcome(
        dialect=dialect,
        reply=reply,
        response=response,
        calls=calls,
        calls_from_text=calls_from_text,
    )


class DialectStrategy(ABC):
    """One way of asking the provider for a reply."""

    dialect: Dialect

    @abstractmethod
    async def attempt(
        self,
        provider: LLMProvider,
        messages: list[ChatMessage],
        settings: AssistantSettings,
    ) -> DialectOutcome | NotApplicable:
        """Request a reply in this dialect."""


class StructuredCallStrategy(DialectStrategy):
    """Offer the task functions through the tools or functions dialect.

    With a query runner, the read-only calls are answered and the model is
    asked again, for at most max_rounds requests. The first reply without
    read-only calls, or any reply proposing tasks, ends the exchange.
    """

    def __init__(
        self,
        dialect: Dialect,
        query_runner: TaskQueryRunner | None = None,
        max_rounds: int = MAX_TOOL_ROUNDS,
    ):
        if dialect == Dialect.TEXT:
            raise ValueError("StructuredCallStrategy needs the tools or functions dialect")
        self.dialect = dialect
        self.query_runner = query_runner
        self.max_rounds = max(1, max_rounds)

    @property
    def tools(self) -> list[ToolSpec]:
        return TASK_TOOLS if self.query_runner is not None else TOOLS

    def _queries(self, response: LLMResponse) -> list[ToolCall]:
        """Calls to answer before asking again (empty when the reply is final)."""
        calls = response.tool_calls
        if self.query_runner is None or not any(is_read_tool(call.name) for call in calls):
            return []
        if any(is_add_tasks(call.name) for call in calls):
            return []
        # The legacy dialect carries one call per message
        return calls[:1] if self.dialect == Dialect.FUNCTIONS else calls

    async def attempt(
        self,
        provider: LLMProvider,
        messages: list[ChatMessage],
        settings: AssistantSettings,
    ) -> DialectOutcome | NotApplicable:
        if self.dialect not in provider.supported_dialects:
            return NotApplicable(
                dialect=self.dialect,
                reason=f"provider does not implement the {self.dialect.value} dialect",
            )

        conversation = list(messages)
        for round_number in range(1, self.max_rounds + 1):
            try:
                response = await provider.chat_completion(
                    conversation,
                    temperature=settings.temperature,
                    max_tokens=settings.max_tokens,
                    tools=self.tools,
                    dialect=self.dialect,
                )
            except DialectMismatchError as e:
                if round_number > 1:
                    raise
                logger.info("Provider rejected the %s dialect: %s", self.dialect.value, e)
                return NotApplicable(dialect=self.dialect, reason=str(e))

            queries = self._queries(response)
            if not queries:
                break

            logger.debug(
                "Round %d: answering %s",
                round_number, ", ".join(call.name for call in queries)
            )
            conversation.append(ChatMessage(role="assistant", content=response.content, tool_calls=queries))
            for call in queries:
                result = await self.query_runner.run(call)
                conversation.append(ChatMessage.tool_result(call, result))
        else:
            logger.warning("Model was still querying tasks after %d requests", self.max_rounds)

        return interpret_response(self.dialect, response, settings.enable_text_fallback)


class TextStrategy(DialectStrategy):
    """Plain completion; the JSON contract in the system message does the work."""

    dialect = Dialect.TEXT

    async def attempt(
        self,
        provider: LLMProvider,
        messages: list[ChatMessage],
        settings: AssistantSettings,
    ) -> DialectOutcome | NotApplicable:
        response = await provider.chat_completion(
            messages,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            dialect=Dialect.TEXT,
        )
        return interpret_response(Dialect.TEXT, response, settings.enable_text_fallback)


def build_strategies(
    mode: FunctionCallingMode,
    enable_text_fallback: bool = True,
    query_runner: TaskQueryRunner | None = None,
) -> list[DialectStrategy]:
    """Ordered strategy list for a function-calling mode.

    - auto: tools, functions, then text if text fallback is enabled
    - tools: tools only
    - functions: functions only
    - disabled: text only

    query_runner enables the read-only task functions on the structured strategies.
    """
    if mode == FunctionCallingMode.TOOLS:
        return [StructuredCallStrategy(Dialect.TOOLS, query_runner)]
    if mode == FunctionCallingMode.FUNCTIONS:
        return [StructuredCallStrategy(Dialect.FUNCTIONS, query_runner)]
    if mode == FunctionCallingMode.DISABLED:
        return [TextStrategy()]

    strategies: list[DialectStrategy] = [
        StructuredCallStrategy(Dialect.TOOLS, query_runner),
        StructuredCallStrategy(Dialect.FUNCTIONS, query_runner),
    ]
    if enable_text_fallback:
        strategies.append(TextStrategy())
    return strategies

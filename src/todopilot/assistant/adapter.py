"""Remote adapter: asks an LLM endpoint and turns its answer into a reply."""

import json
import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..config import MAX_CONTEXT_TASKS
from ..errors import ProviderHTTPError
from ..llm.base import LLMProvider
from ..llm.models import ChatMessage as LLMMessage
from ..llm.models import Dialect, LLMResponse, ToolCall
from ..prompts import get_response_contract, get_system_prompt
from ..settings.models import AssistantSettings
from ..tasks.base import TaskStore
from ..tasks.models import Task
from .data_structures import AssistantReply, ChatMessage, ChatRole, ReplyKind
from .dialects import DialectStrategy, NotApplicable, build_strategies
from .parsing import remote_error_text
from .tools import TaskQueryRunner

logger = logging.getLogger(__name__)

EMPTY_REPLY_TEXT = "（模型没有返回任何内容）"


def build_task_context(tasks: Sequence[Task], limit: int = MAX_CONTEXT_TASKS) -> str:
    """Compact JSON view of the task list for the system message."""
    if not tasks:
        return "当前没有任何待办任务。"
    shown = [task.to_context() for task in tasks[:limit]]
    context = "当前任务列表（JSON）：\n" + json.dumps(shown, ensure_ascii=False)
    if len(tasks) > limit:
        context += f"\n（仅列出前 {limit} 个任务，共 {len(tasks)} 个）"
    return context


def dialects_exhausted_text(skipped: list[NotApplicable]) -> str:
    reasons = "；".join(f"{item.dialect.value}: {item.reason}" for item in skipped)
    return (
        f"AI 请求失败：当前接口不支持所选的函数调用方式（{reasons}）。"
        "请在设置中将 function_calling_mode 改为 disabled，或开启 enable_text_fallback。"
    )


class NegotiationResult(BaseModel):
    """Outcome of running the dialect chain.

    Attributes:
        reply: Reply to classify (an error reply if nothing worked)
        dialect: Dialect that answered, None if none did
        response: Raw provider response of that dialect
        calls: add_tasks calls detected
        calls_from_text: Whether the calls were parsed from text
        skipped: Strategies that were not applicable, in order
    """

    model_config = ConfigDict(frozen=True)

    reply: AssistantReply
    dialect: Dialect | None = None
    response: LLMResponse | None = None
    calls: list[ToolCall] = Field(default_factory=list)
    calls_from_text: bool = False
    skipped: list[NotApplicable] = Field(default_factory=list)


class RemoteAdapter:
    """Remote backend of the assistant.

    Builds the prompt, negotiates the call dialect and interprets the
    answer. Provider HTTP errors become error replies; only AiCallError
    (no reply at all) propagates.

    Args:
        settings: Settings of this request
        provider: Open LLM provider
        strategies: Dialect chain (built from settings when None)
        task_store: Answers the read-only task functions (not offered when None)
    """

    def __init__(
        self,
        settings: AssistantSettings,
        provider: LLMProvider,
        strategies: list[DialectStrategy] | None = None,
        task_store: TaskStore | None = None,
    ):
        self.settings = settings
        self.provider = provider
        query_runner = TaskQueryRunner(task_store) if task_store is not None else None
        self.strategies = strategies or build_strategies(
            settings.function_calling_mode,
            settings.enable_text_fallback,
            query_runner,
        )

    def build_system_prompt(self, tasks: Sequence[Task]) -> str:
        prompt = self.settings.system_prompt.strip() or get_system_prompt()
        return "\n\n---\n".join([prompt, build_task_context(tasks), get_response_contract()])

    def build_messages(
        self,
        text: str,
        tasks: Sequence[Task],
        history: Sequence[ChatMessage] = (),
    ) -> list[LLMMessage]:
        """Messages for one request: system, recent turns, then the new input.

        Only user and assistant turns are forwarded, at most history_limit
        of them; system notices and error replies stay local.
        """
        messages = [LLMMessage(role="system", content=self.build_system_prompt(tasks))]

        turns = [
            message for message in history
            if message.role == ChatRole.USER
            or (message.role == ChatRole.ASSISTANT and message.kind != ReplyKind.ERROR)
        ]
        limit = self.settings.history_limit
        recent = turns[-limit:] if limit > 0 else []
        messages.extend(LLMMessage(role=m.role.value, content=m.content) for m in recent)

        messages.append(LLMMessage(role="user", content=text))
        return messages

    async def negotiate(self, messages: list[LLMMessage]) -> NegotiationResult:
        """Try each dialect strategy in order.

        Raises:
            AiCallError: If the provider could not be reached
        """
        skipped: list[NotApplicable] = []
        for strategy in self.strategies:
            logger.debug("Trying %s dialect", strategy.dialect.value)
            try:
                outcome = await strategy.attempt(self.provider, messages, self.settings)
            except ProviderHTTPError as e:
                logger.error("Remote request failed: %s", e)
                return NegotiationResult(
                    reply=AssistantReply.error(remote_error_text(str(e))),
                    dialect=strategy.dialect,
                    skipped=skipped,
                )

            if isinstance(outcome, NotApplicable):
                logger.warning("Dialect %s not applicable: %s", outcome.dialect.value, outcome.reason)
                skipped.append(outcome)
                continue

            reply = outcome.reply
            if not reply.text.strip() and not reply.proposed_tasks and reply.kind != ReplyKind.ERROR:
                reply = reply.model_copy(update={"text": EMPTY_REPLY_TEXT})
            return NegotiationResult(
                reply=reply,
                dialect=outcome.dialect,
                response=outcome.response,
                calls=outcome.calls,
                calls_from_text=outcome.calls_from_text,
                skipped=skipped,
            )

        logger.error("No dialect strategy applicable")
        return NegotiationResult(
            reply=AssistantReply.error(dialects_exhausted_text(skipped)),
            skipped=skipped,
        )

    async def respond(
        self,
        text: str,
        tasks: Sequence[Task],
        history: Sequence[ChatMessage] = (),
    ) -> AssistantReply:
        """Answer a user message.

        Raises:
            AiCallError: If the provider could not be reached
        """
        result = await self.negotiate(self.build_messages(text, tasks, history))
        return result.reply

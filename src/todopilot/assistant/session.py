"""Chat session state machine.

A session owns the live transcript and serializes requests: while a reply
is pending (AWAITING_REPLY) further submissions are rejected, never queued.
Every turn ends with an assistant message, whatever failed on the way.
"""

import logging
from collections.abc import Callable

from ..errors import AiCallError, SessionBusyError
from ..llm.base import LLMProvider
from ..llm.factory import provider_from_settings
from ..llm.models import Dialect
from ..settings.base import SettingsStore
from ..settings.models import AssistantSettings
from ..tasks.base import TaskStore
from .adapter import RemoteAdapter
from .classifier import classify
from .data_structures import (
    AssistantReply,
    ChatMessage,
    ChatRole,
    MaterializationResult,
    OperatingMode,
    ReplyKind,
    SessionState,
    TurnResult,
)
from .materializer import ActionMaterializer
from .mode import select_mode
from .parsing import remote_error_text
from .simulator import LocalSimulator

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[AssistantSettings], LLMProvider]
MessageCallback = Callable[[ChatMessage], None]


class ChatSession:
    """Conversation with the task assistant.

    Args:
        task_store: Store read for context and written by materialization
        settings_store: Store read at the start of every request
        simulator: Local backend (a default LocalSimulator when None)
        provider_factory: Builds an LLM provider from settings
        on_message: Called with every message appended to the transcript
    """

    def __init__(
        self,
        task_store: TaskStore,
        settings_store: SettingsStore,
        *,
        simulator: LocalSimulator | None = None,
        provider_factory: ProviderFactory = provider_from_settings,
        on_message: MessageCallback | None = None,
    ):
        self._task_store = task_store
        self._settings_store = settings_store
        self._simulator = simulator or LocalSimulator()
        self._provider_factory = provider_factory
        self._materializer = ActionMaterializer(task_store)
        self._on_message = on_message
        self._messages: list[ChatMessage] = []
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state is not SessionState.IDLE

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Snapshot of the transcript."""
        return tuple(self._messages)

    def clear(self) -> None:
        """Empty the transcript.

        Raises:
            SessionBusyError: If a request is in flight
        """
        if self.is_busy:
            raise SessionBusyError()
        self._messages.clear()

    def _append(self, role: ChatRole, content: str, kind: ReplyKind | None = None) -> ChatMessage:
        message = ChatMessage(role=role, content=content, kind=kind)
        self._messages.append(message)
        if self._on_message is not None:
            try:
                self._on_message(message)
            except Exception:
                logger.exception("on_message callback failed")
        return message

    async def _remote_reply(
        self,
        settings: AssistantSettings,
        text: str,
        history: list[ChatMessage],
    ) -> tuple[AssistantReply, Dialect | None]:
        tasks = await self._task_store.list_tasks()
        async with self._provider_factory(settings) as provider:
            adapter = RemoteAdapter(settings, provider, task_store=self._task_store)
            result = await adapter.negotiate(adapter.build_messages(text, tasks, history))
        return result.reply, result.dialect

    async def submit(self, text: str) -> TurnResult:
        """Send a user message and wait for the assistant.

        Args:
            text: User input

        Returns:
            TurnResult with every message appended this turn

        Raises:
            ValueError: If text is blank
            SessionBusyError: If a request is already in flight
        """
        if not text or not text.strip():
            raise ValueError("Message must not be blank")
        if self.is_busy:
            raise SessionBusyError()

        text = text.strip()
        history = list(self._messages)
        user_message = self._append(ChatRole.USER, text)
        appended = [user_message]
        self._state = SessionState.AWAITING_REPLY

        mode = OperatingMode.LOCAL
        dialect: Dialect | None = None
        materialization: MaterializationResult | None = None

        try:
            try:
                settings = await self._settings_store.get()
                mode = select_mode(settings)
                logger.info("Answering in %s mode", mode.value)

                if mode is OperatingMode.REMOTE:
                    reply, dialect = await self._remote_reply(settings, text, history)
                else:
                    tasks = await self._task_store.list_tasks()
                    reply = await self._simulator.respond(text, tasks)

                reply = classify(reply)
                if reply.kind == ReplyKind.GENERATION:
                    materialization = await self._materializer.materialize(reply.proposed_tasks)
            except AiCallError as e:
                logger.error("No reply from the remote endpoint: %s", e)
                reply = AssistantReply.error(remote_error_text(e.message))
            except Exception as e:
                logger.exception("Assistant request failed")
                reply = AssistantReply.error(remote_error_text(str(e) or type(e).__name__))

            appended.append(self._append(ChatRole.ASSISTANT, reply.text, kind=reply.kind))
            if reply.warnings:
                appended.append(self._append(ChatRole.SYSTEM, "⚠️ " + "；".join(reply.warnings)))
            if materialization is not None:
                appended.append(self._append(ChatRole.SYSTEM, materialization.system_message()))
        finally:
            self._state = SessionState.IDLE

        return TurnResult(
            user_message=user_message,
            reply=reply,
            messages=appended,
            mode=mode,
            dialect=dialect,
            materialization=materialization,
        )

"""Unit tests for dialect strategies and the remote adapter."""
import json

import pytest

from conftest import FakeProvider, call_response, query_response, text_response
from todopilot.assistant import (
    ChatMessage,
    ChatRole,
    NotApplicable,
    RemoteAdapter,
    ReplyKind,
    StructuredCallStrategy,
    TextStrategy,
    build_strategies,
)
from todopilot.assistant.dialects import INLINE_CALL_WARNING, interpret_response
from todopilot.assistant.tools import TaskQueryRunner
from todopilot.errors import AiCallError, DialectMismatchError, ProviderHTTPError
from todopilot.llm import Dialect
from todopilot.settings import AssistantSettings, FunctionCallingMode
from todopilot.tasks import Task, TaskStatus
from todopilot.tasks.in_memory import InMemoryTaskStore


def mismatch(dialect: Dialect) -> DialectMismatchError:
    return DialectMismatchError(dialect.value, 400, f"Unrecognized request argument supplied: {dialect.value}")


class TestBuildStrategies:
    """Tests for build_strategies."""

    @pytest.mark.parametrize("mode, fallback, expected", [
        (FunctionCallingMode.AUTO, True, [Dialect.TOOLS, Dialect.FUNCTIONS, Dialect.TEXT]),
        (FunctionCallingMode.AUTO, False, [Dialect.TOOLS, Dialect.FUNCTIONS]),
        (FunctionCallingMode.TOOLS, True, [Dialect.TOOLS]),
        (FunctionCallingMode.FUNCTIONS, True, [Dialect.FUNCTIONS]),
        (FunctionCallingMode.DISABLED, False, [Dialect.TEXT]),
    ])
    def test_chain(self, mode, fallback, expected):
        assert [s.dialect for s in build_strategies(mode, fallback)] == expected

    def test_mode_aliases(self):
        assert FunctionCallingMode("modern-only") == FunctionCallingMode.TOOLS
        assert FunctionCallingMode("legacy-only") == FunctionCallingMode.FUNCTIONS

    def test_structured_strategy_rejects_text(self):
        with pytest.raises(ValueError):
            StructuredCallStrategy(Dialect.TEXT)


class TestStrategies:
    """Tests for individual strategies."""

    @pytest.mark.asyncio
    async def test_unsupported_dialect_not_applicable(self, remote_settings):
        provider = FakeProvider(dialects=frozenset({Dialect.TOOLS}))

        outcome = await StructuredCallStrategy(Dialect.FUNCTIONS).attempt(provider, [], remote_settings)

        assert isinstance(outcome, NotApplicable)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_mismatch_not_applicable(self, remote_settings):
        provider = FakeProvider({Dialect.TOOLS: mismatch(Dialect.TOOLS)})

        outcome = await StructuredCallStrategy(Dialect.TOOLS).attempt(provider, [], remote_settings)

        assert isinstance(outcome, NotApplicable)
        assert outcome.dialect == Dialect.TOOLS

    @pytest.mark.asyncio
    async def test_structured_call_offers_add_tasks(self, remote_settings):
        provider = FakeProvider({Dialect.TOOLS: call_response(Dialect.TOOLS, "a", "b")})

        outcome = await StructuredCallStrategy(Dialect.TOOLS).attempt(provider, [], remote_settings)

        assert [tool.name for tool in provider.calls[0]["tools"]] == ["add_tasks"]
        assert outcome.reply.kind == ReplyKind.GENERATION
        assert [t.text for t in outcome.reply.proposed_tasks] == ["a", "b"]
        assert not outcome.calls_from_text

    @pytest.mark.asyncio
    async def test_text_strategy_sends_no_tools(self, remote_settings):
        provider = FakeProvider({Dialect.TEXT: text_response('{"response": "hi"}')})

        outcome = await TextStrategy().attempt(provider, [], remote_settings)

        assert provider.calls[0]["tools"] is None
        assert outcome.reply.text == "hi"

    @pytest.mark.asyncio
    async def test_other_http_errors_propagate(self, remote_settings):
        provider = FakeProvider({Dialect.TOOLS: ProviderHTTPError(401, "invalid api key")})

        with pytest.raises(ProviderHTTPError):
            await StructuredCallStrategy(Dialect.TOOLS).attempt(provider, [], remote_settings)


class TestInterpretResponse:
    """Tests for interpret_response."""

    def test_inline_call_extracted_with_warning(self):
        content = '好的 {"name": "add_tasks", "arguments": {"tasks": ["x"]}}'

        outcome = interpret_response(Dialect.TEXT, text_response(content), extract_inline=True)

        assert outcome.calls_from_text
        assert outcome.reply.kind == ReplyKind.GENERATION
        assert outcome.reply.text == "好的"
        assert outcome.reply.warnings == [INLINE_CALL_WARNING]

    def test_inline_call_ignored_without_fallback(self):
        content = '{"name": "add_tasks", "arguments": {"tasks": ["x"]}}'

        outcome = interpret_response(Dialect.TEXT, text_response(content), extract_inline=False)

        assert outcome.reply.kind == ReplyKind.CHAT
        assert outcome.calls == []

    def test_native_calls_merge_with_content_tasks(self):
        response = call_response(Dialect.TOOLS, "a", content='{"response": "plan", "new_tasks": ["b"]}')

        outcome = interpret_response(Dialect.TOOLS, response)

        assert outcome.reply.text == "plan"
        assert [t.text for t in outcome.reply.proposed_tasks] == ["a", "b"]


@pytest.fixture
def query_runner():
    return TaskQueryRunner(InMemoryTaskStore([
        Task(text="写周报", status=TaskStatus.COMPLETED, completed=True),
        Task(text="准备周会"),
    ]))


class TestTaskQueryRounds:
    """Tests for answering read-only calls before the final reply."""

    @pytest.mark.asyncio
    async def test_query_result_sent_back(self, remote_settings, query_runner):
        provider = FakeProvider({Dialect.TOOLS: [
            query_response(Dialect.TOOLS, status="completed"),
            text_response('{"response": "本周完成了写周报", "kind": "summary"}', Dialect.TOOLS),
        ]})

        outcome = await StructuredCallStrategy(Dialect.TOOLS, query_runner).attempt(provider, [], remote_settings)

        assert outcome.reply.kind == ReplyKind.SUMMARY
        assert outcome.reply.text == "本周完成了写周报"
        assert [tool.name for tool in provider.calls[0]["tools"]] == ["add_tasks", "query_tasks", "get_statistics"]

        assert len(provider.calls) == 2
        request, answer = provider.calls[1]["messages"][-2:]
        assert request.role == "assistant"
        assert request.tool_calls[0].name == "query_tasks"
        assert answer.role == "tool"
        assert answer.tool_call_id == request.tool_calls[0].id
        assert json.loads(answer.content)["tasks"] == [{"text": "写周报", "completed": True, "status": "completed"}]

    @pytest.mark.asyncio
    async def test_rounds_are_bounded(self, remote_settings, query_runner):
        provider = FakeProvider({Dialect.TOOLS: [query_response(Dialect.TOOLS, "get_statistics")]})

        outcome = await StructuredCallStrategy(Dialect.TOOLS, query_runner, max_rounds=3).attempt(
            provider, [], remote_settings
        )

        assert len(provider.calls) == 3
        assert outcome.reply.kind == ReplyKind.CHAT
        assert outcome.calls == []

    @pytest.mark.asyncio
    async def test_proposal_ends_the_exchange(self, remote_settings, query_runner):
        response = call_response(Dialect.TOOLS, "a")
        response = response.model_copy(update={
            "tool_calls": [*response.tool_calls, *query_response(Dialect.TOOLS).tool_calls],
        })
        provider = FakeProvider({Dialect.TOOLS: response})

        outcome = await StructuredCallStrategy(Dialect.TOOLS, query_runner).attempt(provider, [], remote_settings)

        assert len(provider.calls) == 1
        assert outcome.reply.kind == ReplyKind.GENERATION
        assert [t.text for t in outcome.reply.proposed_tasks] == ["a"]

    @pytest.mark.asyncio
    async def test_queries_ignored_without_runner(self, remote_settings):
        provider = FakeProvider({Dialect.TOOLS: query_response(Dialect.TOOLS)})

        await StructuredCallStrategy(Dialect.TOOLS).attempt(provider, [], remote_settings)

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_functions_dialect_answers_one_call(self, remote_settings, query_runner):
        first = query_response(Dialect.FUNCTIONS)
        first = first.model_copy(update={
            "tool_calls": [*first.tool_calls, *query_response(Dialect.FUNCTIONS, "get_statistics").tool_calls],
        })
        provider = FakeProvider({Dialect.FUNCTIONS: [first, text_response('{"response": "ok"}', Dialect.FUNCTIONS)]})

        outcome = await StructuredCallStrategy(Dialect.FUNCTIONS, query_runner).attempt(provider, [], remote_settings)

        followup = provider.calls[1]["messages"]
        assert [m.role for m in followup] == ["assistant", "tool"]
        assert followup[1].name == "query_tasks"
        assert outcome.reply.text == "ok"

    @pytest.mark.asyncio
    async def test_mismatch_after_first_round_propagates(self, remote_settings, query_runner):
        provider = FakeProvider({Dialect.TOOLS: [query_response(Dialect.TOOLS), mismatch(Dialect.TOOLS)]})

        with pytest.raises(DialectMismatchError):
            await StructuredCallStrategy(Dialect.TOOLS, query_runner).attempt(provider, [], remote_settings)

    def test_runner_reaches_every_structured_strategy(self, query_runner):
        strategies = build_strategies(FunctionCallingMode.AUTO, True, query_runner)

        assert [getattr(s, "query_runner", None) for s in strategies] == [query_runner, query_runner, None]


def build_adapter(provider, **settings) -> RemoteAdapter:
    return RemoteAdapter(AssistantSettings(api_key="sk-test", **settings), provider)


class TestRemoteAdapterMessages:
    """Tests for prompt construction."""

    def test_system_message_has_context_and_contract(self, fake_provider):
        adapter = build_adapter(fake_provider)
        tasks = [Task(text="写周报", status=TaskStatus.COMPLETED, completed=True)]

        messages = adapter.build_messages("hi", tasks)

        assert [m.role for m in messages] == ["system", "user"]
        system = messages[0].content
        assert json.dumps([{"text": "写周报", "completed": True, "status": "completed"}], ensure_ascii=False) in system
        assert tasks[0].id not in system
        assert "new_tasks" in system
        assert messages[-1].content == "hi"

    def test_custom_system_prompt(self, fake_provider):
        adapter = build_adapter(fake_provider, system_prompt="You are terse.")
        assert adapter.build_messages("hi", [])[0].content.startswith("You are terse.")

    def test_task_context_is_capped(self, fake_provider):
        tasks = [Task(text=f"task {i}") for i in range(60)]

        system = build_adapter(fake_provider).build_messages("hi", tasks)[0].content

        assert "task 49" in system
        assert "task 50" not in system

    def test_history_is_limited_and_filtered(self, fake_provider):
        history = [ChatMessage(role=ChatRole.USER, content=f"u{i}") for i in range(5)]
        history.append(ChatMessage(role=ChatRole.SYSTEM, content="notice"))
        history.append(ChatMessage(role=ChatRole.ASSISTANT, content="boom", kind=ReplyKind.ERROR))
        history.append(ChatMessage(role=ChatRole.ASSISTANT, content="a5", kind=ReplyKind.CHAT))

        messages = build_adapter(fake_provider, history_limit=2).build_messages("now", [], history)

        assert [m.content for m in messages[1:]] == ["u4", "a5", "now"]

    def test_zero_history_limit(self, fake_provider):
        history = [ChatMessage(role=ChatRole.USER, content="old")]
        messages = build_adapter(fake_provider, history_limit=0).build_messages("now", [], history)
        assert len(messages) == 2


class TestRemoteAdapterNegotiation:
    """Tests for RemoteAdapter.negotiate and respond."""

    @pytest.mark.asyncio
    async def test_auto_falls_back_to_functions(self):
        provider = FakeProvider({
            Dialect.TOOLS: mismatch(Dialect.TOOLS),
            Dialect.FUNCTIONS: call_response(Dialect.FUNCTIONS, "a"),
        })
        adapter = build_adapter(provider)

        result = await adapter.negotiate(adapter.build_messages("plan", []))

        assert provider.dialects_tried == [Dialect.TOOLS, Dialect.FUNCTIONS]
        assert result.dialect == Dialect.FUNCTIONS
        assert result.reply.kind == ReplyKind.GENERATION
        assert [s.dialect for s in result.skipped] == [Dialect.TOOLS]

    @pytest.mark.asyncio
    async def test_auto_falls_back_to_text(self):
        provider = FakeProvider(
            {Dialect.TOOLS: mismatch(Dialect.TOOLS), Dialect.TEXT: text_response('{"response": "hi"}')},
            dialects=frozenset({Dialect.TOOLS}),
        )

        result = await build_adapter(provider).negotiate([])

        assert provider.dialects_tried == [Dialect.TOOLS, Dialect.TEXT]
        assert result.dialect == Dialect.TEXT
        assert result.reply.text == "hi"

    @pytest.mark.asyncio
    async def test_all_strategies_exhausted(self):
        provider = FakeProvider({
            Dialect.TOOLS: mismatch(Dialect.TOOLS),
            Dialect.FUNCTIONS: mismatch(Dialect.FUNCTIONS),
        })

        result = await build_adapter(provider, enable_text_fallback=False).negotiate([])

        assert result.dialect is None
        assert result.reply.kind == ReplyKind.ERROR
        assert "disabled" in result.reply.text

    @pytest.mark.asyncio
    async def test_tools_mode_has_no_fallback(self):
        provider = FakeProvider({Dialect.TOOLS: mismatch(Dialect.TOOLS)})

        result = await build_adapter(provider, function_calling_mode="tools").negotiate([])

        assert provider.dialects_tried == [Dialect.TOOLS]
        assert result.reply.kind == ReplyKind.ERROR

    @pytest.mark.asyncio
    async def test_http_error_becomes_error_reply(self):
        provider = FakeProvider({Dialect.TOOLS: ProviderHTTPError(401, "Incorrect API key provided")})

        reply = await build_adapter(provider).respond("hi", [])

        assert reply.kind == ReplyKind.ERROR
        assert "Incorrect API key provided" in reply.text
        assert "API Key" in reply.text

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self):
        provider = FakeProvider({Dialect.TOOLS: AiCallError("timeout")})

        with pytest.raises(AiCallError):
            await build_adapter(provider).respond("hi", [])

    @pytest.mark.asyncio
    async def test_empty_reply_gets_placeholder(self):
        provider = FakeProvider({Dialect.TEXT: text_response("")})

        reply = await build_adapter(provider, function_calling_mode="disabled").respond("hi", [])

        assert reply.kind == ReplyKind.CHAT
        assert reply.text.strip()

    @pytest.mark.asyncio
    async def test_plain_text_reply_is_verbatim(self):
        provider = FakeProvider({Dialect.TOOLS: text_response("Sure, sounds good.", Dialect.TOOLS)})

        reply = await build_adapter(provider).respond("hi", [])

        assert reply.kind == ReplyKind.CHAT
        assert reply.text == "Sure, sounds good."

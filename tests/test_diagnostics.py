"""Unit tests for connection and function-call diagnostics."""
import pytest

from conftest import FakeProvider, call_response, text_response
from todopilot.assistant import check_connection, run_function_call_diagnostic
from todopilot.errors import AiCallError, DialectMismatchError, ProviderHTTPError
from todopilot.llm import Dialect
from todopilot.settings import AssistantSettings
from todopilot.settings.in_memory import InMemorySettingsStore


def factory_for(provider):
    return lambda settings: provider


class TestFunctionCallDiagnostic:
    """Tests for run_function_call_diagnostic."""

    @pytest.mark.asyncio
    async def test_no_api_key(self, task_store):
        result = await run_function_call_diagnostic(AssistantSettings(), task_store)

        assert not result.success
        assert result.api_format_detected == "none"
        assert result.recommendations

    @pytest.mark.asyncio
    async def test_native_tools_call(self, task_store, remote_settings):
        provider = FakeProvider({Dialect.TOOLS: call_response(Dialect.TOOLS, "A", "B")})

        result = await run_function_call_diagnostic(remote_settings, task_store, factory_for(provider))

        assert result.success
        assert result.api_format_detected == "tools"
        assert result.function_called
        assert result.function_name == "add_tasks"
        assert result.tasks_created == 2
        assert result.raw_response_sample
        assert len(await task_store.list_tasks()) == 2

    @pytest.mark.asyncio
    async def test_legacy_functions_detected(self, task_store, remote_settings):
        provider = FakeProvider({
            Dialect.TOOLS: DialectMismatchError("tools", 400, "tools not supported"),
            Dialect.FUNCTIONS: call_response(Dialect.FUNCTIONS, "A"),
        })

        result = await run_function_call_diagnostic(remote_settings, task_store, factory_for(provider))

        assert result.success
        assert result.api_format_detected == "functions"
        assert any("functions" in hint for hint in result.recommendations)

    @pytest.mark.asyncio
    async def test_call_parsed_from_text(self, task_store, remote_settings):
        content = '{"name": "add_tasks", "arguments": {"tasks": ["A"]}}'
        provider = FakeProvider({Dialect.TOOLS: text_response(content, Dialect.TOOLS)})

        result = await run_function_call_diagnostic(remote_settings, task_store, factory_for(provider))

        assert result.success
        assert result.tasks_created == 1
        assert result.recommendations

    @pytest.mark.asyncio
    async def test_no_call(self, task_store, remote_settings):
        provider = FakeProvider({Dialect.TOOLS: text_response("I can't do that", Dialect.TOOLS)})

        result = await run_function_call_diagnostic(remote_settings, task_store, factory_for(provider))

        assert not result.success
        assert not result.function_called
        assert result.raw_response_sample == "I can't do that"
        assert await task_store.list_tasks() == []

    @pytest.mark.asyncio
    async def test_transport_failure(self, task_store, remote_settings):
        provider = FakeProvider({Dialect.TOOLS: AiCallError("connection refused")})

        result = await run_function_call_diagnostic(remote_settings, task_store, factory_for(provider))

        assert not result.success
        assert "connection refused" in result.message

    @pytest.mark.asyncio
    async def test_unexpected_provider_error(self, task_store, remote_settings):
        """Errors outside the provider contract still produce a result with hints."""
        provider = FakeProvider({Dialect.TOOLS: RuntimeError("ssl handshake")})

        result = await run_function_call_diagnostic(remote_settings, task_store, factory_for(provider))

        assert not result.success
        assert "ssl handshake" in result.message
        assert any(remote_settings.api_base_url in hint for hint in result.recommendations)
        assert provider.closed
        assert await task_store.list_tasks() == []

    @pytest.mark.asyncio
    async def test_no_dialect_available(self, task_store):
        settings = AssistantSettings(api_key="sk", function_calling_mode="functions")
        provider = FakeProvider(dialects=frozenset({Dialect.TOOLS}))

        result = await run_function_call_diagnostic(settings, task_store, factory_for(provider))

        assert not result.success
        assert any("disabled" in hint for hint in result.recommendations)


class TestCheckConnection:
    """Tests for check_connection and SettingsStore.test_connection."""

    @pytest.mark.asyncio
    async def test_ok(self, remote_settings):
        assert await check_connection(remote_settings, factory_for(FakeProvider()))

    @pytest.mark.asyncio
    async def test_rejected(self, remote_settings):
        provider = FakeProvider(ping_error=ProviderHTTPError(401, "bad key"))
        assert not await check_connection(remote_settings, factory_for(provider))

    @pytest.mark.asyncio
    async def test_no_key(self):
        assert not await InMemorySettingsStore().test_connection()

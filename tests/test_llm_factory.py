"""Unit tests for provider presets and the LLM factory."""
import pytest

from todopilot.llm import (
    PROVIDER_PRESETS,
    GeminiProvider,
    OpenAIProvider,
    create_llm_provider,
    provider_from_settings,
    resolve_preset,
)
from todopilot.settings import AssistantSettings


class TestResolvePreset:
    """Tests for resolve_preset."""

    def test_defaults_to_openai(self):
        assert resolve_preset(AssistantSettings()).name == "openai"

    @pytest.mark.parametrize("url, name", [
        ("https://api.deepseek.com", "deepseek"),
        ("https://api.deepseek.com/v1", "deepseek"),
        ("https://api.moonshot.cn/v1", "moonshot"),
        ("https://open.bigmodel.cn/api/paas/v4/", "zhipu"),
        ("https://generativelanguage.googleapis.com/v1beta", "gemini"),
        ("http://localhost:11434/v1", "openai"),
    ])
    def test_inferred_from_url(self, url, name):
        assert resolve_preset(AssistantSettings(api_base_url=url)).name == name

    def test_explicit_provider_wins(self):
        settings = AssistantSettings(provider="Gemini", api_base_url="https://proxy.example.com")
        assert resolve_preset(settings).name == "gemini"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            resolve_preset(AssistantSettings(provider="nope"))


class TestCreateLLMProvider:
    """Tests for create_llm_provider."""

    def test_openai_compatible_presets(self):
        provider = create_llm_provider("deepseek", api_key="sk-test")

        assert isinstance(provider, OpenAIProvider)
        assert provider.model == PROVIDER_PRESETS["deepseek"].default_model
        assert str(provider._client.base_url).startswith("https://api.deepseek.com")

    def test_gemini(self):
        provider = create_llm_provider("gemini", api_key="test")

        assert isinstance(provider, GeminiProvider)
        assert provider.model == "gemini-2.5-flash"

    def test_missing_key(self):
        with pytest.raises(TypeError):
            create_llm_provider("openai")

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_llm_provider("anthropic", api_key="x")


class TestProviderFromSettings:
    """Tests for provider_from_settings."""

    def test_requires_key(self):
        with pytest.raises(ValueError):
            provider_from_settings(AssistantSettings())

    def test_custom_openai_endpoint(self):
        settings = AssistantSettings(api_key="sk", api_base_url="http://localhost:8000/v1", model="qwen")

        provider = provider_from_settings(settings)

        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "qwen"
        assert str(provider._client.base_url).startswith("http://localhost:8000/v1")

    def test_preset_replaces_default_url_and_model(self):
        provider = provider_from_settings(AssistantSettings(api_key="sk", provider="moonshot"))

        assert provider.model == "moonshot-v1-8k"
        assert str(provider._client.base_url).startswith("https://api.moonshot.cn/v1")

    def test_gemini_from_url(self):
        settings = AssistantSettings(api_key="k", api_base_url="https://generativelanguage.googleapis.com")

        provider = provider_from_settings(settings)

        assert isinstance(provider, GeminiProvider)
        assert provider.model == "gemini-2.5-flash"

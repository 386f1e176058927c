from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from ..config import REQUEST_TIMEOUT_SECONDS
from ..settings.models import DEFAULT_API_BASE_URL, DEFAULT_MODEL, AssistantSettings
from .base import LLMProvider
from .providers import GeminiProvider, OpenAIProvider


class ProviderPreset(BaseModel):
    """A known endpoint: SDK family, base URL and default model."""

    model_config = ConfigDict(frozen=True)

    name: str
    family: Literal["openai", "gemini"]
    base_url: str
    default_model: str


PROVIDER_PRESETS: dict[str, ProviderPreset] = {
    preset.name: preset
    for preset in (
        ProviderPreset(
            name="openai", family="openai",
            base_url=DEFAULT_API_BASE_URL, default_model=DEFAULT_MODEL,
        ),
        ProviderPreset(
            name="deepseek", family="openai",
            base_url="https://api.deepseek.com", default_model="deepseek-chat",
        ),
        ProviderPreset(
            name="moonshot", family="openai",
            base_url="https://api.moonshot.cn/v1", default_model="moonshot-v1-8k",
        ),
        ProviderPreset(
            name="zhipu", family="openai",
            base_url="https://open.bigmodel.cn/api/paas/v4", default_model="glm-4-flash",
        ),
        ProviderPreset(
            name="gemini", family="gemini",
            base_url="https://generativelanguage.googleapis.com", default_model="gemini-2.5-flash",
        ),
    )
}


def resolve_preset(settings: AssistantSettings) -> ProviderPreset:
    """Pick the preset for the configured endpoint.

    An explicit provider name wins; otherwise the preset whose base URL
    prefixes api_base_url is used, and unknown URLs are treated as
    OpenAI-compatible.

    Raises:
        ValueError: If settings.provider names no preset
    """
    if settings.provider:
        name = settings.provider.lower()
        if name not in PROVIDER_PRESETS:
            raise ValueError(
                f"Unsupported provider: {settings.provider}. "
                f"Supported providers: {', '.join(repr(n) for n in PROVIDER_PRESETS)}"
            )
        return PROVIDER_PRESETS[name]

    base_url = settings.api_base_url.lower()
    for preset in PROVIDER_PRESETS.values():
        if base_url.startswith(preset.base_url.lower()):
            return preset
    return PROVIDER_PRESETS["openai"]


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider instance.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Preset name ('openai', 'deepseek', 'moonshot', 'zhipu', 'gemini')
            or SDK family
        **config: Provider-specific configuration
            For OpenAI-compatible presets:
                - api_key: str (required)
                - model: str (default: the preset's model)
                - base_url: str (default: the preset's URL)
            For Gemini:
                - api_key: str (required)
                - model: str (default: 'gemini-2.5-flash')
                - base_url: str | None (None uses the SDK endpoint)

    Returns:
        Initialized LLM provider instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> provider = create_llm_provider(
        ...     "deepseek",
        ...     api_key="sk-...",
        ...     model="deepseek-chat"
        ... )
    """
    provider_lower = provider.lower()
    preset = PROVIDER_PRESETS.get(provider_lower)
    if preset is None:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {', '.join(repr(n) for n in PROVIDER_PRESETS)}"
        )
    if "api_key" not in config:
        raise TypeError(f"{preset.name} provider requires 'api_key' in config")

    config.setdefault("model", preset.default_model)
    if preset.family == "gemini":
        return GeminiProvider(**config)

    config.setdefault("base_url", preset.base_url)
    return OpenAIProvider(**config)


def provider_from_settings(settings: AssistantSettings) -> LLMProvider:
    """Build the provider for the current settings.

    The default OpenAI base URL and model are placeholders: when a
    different preset is selected they are replaced by that preset's values.

    Raises:
        ValueError: If no API key is configured or the provider is unknown
    """
    if not settings.has_credential:
        raise ValueError("An API key is required for the remote provider")

    preset = resolve_preset(settings)

    base_url: str | None = settings.api_base_url
    if base_url == DEFAULT_API_BASE_URL:
        base_url = preset.base_url
    if preset.family == "gemini" and base_url == preset.base_url:
        base_url = None

    model = settings.model
    if model == DEFAULT_MODEL and preset.name != "openai":
        model = preset.default_model

    return create_llm_provider(
        preset.name,
        api_key=settings.api_key,
        model=model,
        base_url=base_url,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )

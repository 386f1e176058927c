from .base import LLMProvider, is_dialect_mismatch
from .factory import (
    PROVIDER_PRESETS,
    ProviderPreset,
    create_llm_provider,
    provider_from_settings,
    resolve_preset,
)
from .models import ChatMessage, Dialect, LLMResponse, ToolCall, ToolSpec
from .providers import GeminiProvider, OpenAIProvider

__all__ = [
    "LLMProvider",
    "is_dialect_mismatch",
    "PROVIDER_PRESETS",
    "ProviderPreset",
    "create_llm_provider",
    "provider_from_settings",
    "resolve_preset",
    "ChatMessage",
    "Dialect",
    "LLMResponse",
    "ToolCall",
    "ToolSpec",
    "GeminiProvider",
    "OpenAIProvider",
]

"""Data models for assistant settings."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

DEFAULT_API_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


class FunctionCallingMode(str, Enum):
    """How the remote adapter asks for structured function calls."""

    AUTO = "auto"              # Modern tools, then legacy functions, then text
    TOOLS = "tools"            # Modern tool-call dialect only
    FUNCTIONS = "functions"    # Legacy function-call dialect only
    DISABLED = "disabled"      # Plain text / JSON contract only

    @classmethod
    def _missing_(cls, value: object) -> "FunctionCallingMode | None":
        aliases = {
            "modern-only": cls.TOOLS,
            "modern": cls.TOOLS,
            "legacy-only": cls.FUNCTIONS,
            "legacy": cls.FUNCTIONS,
        }
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class AssistantSettings(BaseModel):
    """Settings of the assistant.

    The operating mode depends only on api_key: a non-blank key selects the
    remote adapter, anything else the local simulator.
    """

    api_key: str | None = Field(default=None, description="Credential for the remote endpoint")
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, description="Base URL of the endpoint")
    model: str = Field(default=DEFAULT_MODEL, description="Model name")
    provider: str | None = Field(
        default=None,
        description="Provider preset name; inferred from api_base_url when None"
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1)
    system_prompt: str = Field(
        default="",
        description="Custom system prompt; empty uses the packaged prompt"
    )
    function_calling_mode: FunctionCallingMode = FunctionCallingMode.AUTO
    enable_text_fallback: bool = Field(
        default=True,
        description="Parse function calls and JSON from plain text when structured calls are unavailable"
    )
    history_limit: int = Field(
        default=10,
        ge=0,
        description="Transcript messages forwarded to the remote model"
    )

    @field_validator("api_key", "provider")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat blank strings as unset."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended."""
        v = v.strip().rstrip("/")
        return v or DEFAULT_API_BASE_URL

    @property
    def has_credential(self) -> bool:
        """Whether a remote credential is configured."""
        return bool(self.api_key)

    def masked(self) -> dict:
        """Dump for display with the credential hidden."""
        data = self.model_dump(mode="json")
        if self.api_key:
            data["api_key"] = f"{self.api_key[:4]}…{self.api_key[-2:]}" if len(self.api_key) > 8 else "****"
        return data

"""Per-request connection settings for the database and the LLM."""

from typing import Any

from pydantic import Field, SecretStr

from smart_postgres.core.types import LLMProvider
from smart_postgres.models.base import CamelModel


class DatabaseConnectionConfig(CamelModel):
    """PostgreSQL connection details supplied by the client.

    Never persisted server-side.
    """

    host: str = Field(..., description="Database host")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: SecretStr = Field(default=SecretStr(""), description="Database password")
    ssl: bool = Field(default=False, description="Connect over TLS without certificate verification")

    @property
    def cache_key(self) -> str:
        """Identity of the connection, used for schema caching."""
        return f"{self.host}:{self.port}/{self.database}/{self.user}"


# Defaults applied under whatever the client sends.
PROVIDER_DEFAULTS: dict[LLMProvider, dict[str, Any]] = {
    LLMProvider.OPENROUTER: {
        "base_url": "https://openrouter.ai/api/v1",
        "model": "anthropic/claude-3-sonnet-20240229",
    },
    LLMProvider.OPENAI_COMPATIBLE: {
        "model": "gpt-3.5-turbo",
    },
    LLMProvider.OLLAMA: {
        "base_url": "http://localhost:11434",
        "model": "codellama:7b-instruct",
    },
}


class LLMConfig(CamelModel):
    """Which LLM to talk to and how."""

    provider: LLMProvider = Field(..., description="LLM backend")
    api_key: SecretStr = Field(default=SecretStr(""), description="API key (unused by ollama)")
    base_url: str | None = Field(default=None, description="Override the provider base URL")
    model: str | None = Field(default=None, description="Model name")
    organization: str | None = Field(default=None, description="OpenAI organization id")
    default_headers: dict[str, str] | None = Field(
        default=None, description="Extra HTTP headers sent with every request"
    )

    def resolve(self, default_headers: dict[str, str] | None = None) -> "LLMConfig":
        """Return a copy with provider defaults filled in.

        Values set by the client win over defaults, header by header.
        """
        defaults = PROVIDER_DEFAULTS[self.provider]
        headers = dict(default_headers or {})
        headers.update(self.default_headers or {})
        return self.model_copy(
            update={
                "base_url": self.base_url or defaults.get("base_url"),
                "model": self.model or defaults.get("model"),
                "default_headers": headers or None,
            }
        )

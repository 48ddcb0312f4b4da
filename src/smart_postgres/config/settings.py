"""Application settings using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Database and LLM credentials are supplied per request by the client and
    are never part of the server configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_debug: bool = Field(default=False, description="Enable debug mode")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")

    # SQL Execution Settings
    sql_timeout_seconds: int = Field(default=30, description="Statement timeout in seconds")
    strict_sql_guard: bool = Field(
        default=False,
        description="Additionally parse SQL with sqlglot and allow only read queries",
    )

    # Pagination Settings
    query_page_size: int = Field(default=200, description="Page size for natural language queries")
    execute_page_size: int = Field(default=50, description="Page size for direct SQL execution")
    max_page: int = Field(default=10000, description="Highest page number that may be requested")

    # Caching and Sessions
    schema_cache_ttl_seconds: int = Field(default=300, description="Schema cache lifetime")
    context_max_queries: int = Field(default=10, description="Queries kept per conversation")
    session_idle_timeout_seconds: int = Field(
        default=3600, description="Idle time after which a conversation session is dropped"
    )

    # LLM Settings
    llm_temperature: float = Field(default=0.0, description="Sampling temperature for all prompts")
    llm_timeout_seconds: float = Field(default=60.0, description="LLM request timeout")
    openrouter_referer: str = Field(
        default="https://github.com/smart-postgres/smart-postgres",
        description="HTTP-Referer header sent to OpenRouter",
    )
    openrouter_title: str = Field(default="Smart Postgres", description="X-Title header for OpenRouter")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""API request models."""

from typing import Any

from pydantic import Field

from smart_postgres.models.base import CamelModel
from smart_postgres.models.connection import DatabaseConnectionConfig, LLMConfig


class QueryRequest(CamelModel):
    """Request model for the natural language query endpoint."""

    query: str = Field(..., min_length=1, description="Natural language question")
    db_config: DatabaseConnectionConfig = Field(..., description="Database to query")
    llm_config: LLMConfig = Field(..., description="LLM used for every prompt")
    inputs: dict[str, Any] | None = Field(
        default=None, description="Values for previously requested inputs, keyed by input name"
    )
    context: str | None = Field(default=None, description="Client-held conversation context")
    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    session_id: str | None = Field(
        default=None, description="Optional session ID for server-side conversation context"
    )


class SchemaRequest(CamelModel):
    """Request model for schema introspection."""

    db_config: DatabaseConnectionConfig
    refresh: bool = Field(default=False, description="Bypass and replace the cached schema")


class ConnectionTestRequest(CamelModel):
    """Request model for connection checks."""

    db_config: DatabaseConnectionConfig


class ExecuteRequest(CamelModel):
    """Request model for paginated execution of known SQL."""

    query: str = Field(..., min_length=1, description="SQL to execute")
    db_config: DatabaseConnectionConfig
    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")


class ExecuteSQLRequest(CamelModel):
    """Request model for raw, unpaginated SQL execution."""

    query: str = Field(..., min_length=1, description="SQL to execute")
    db_config: DatabaseConnectionConfig


class GenerateRequest(CamelModel):
    """Request model for SQL generation without execution."""

    query: str = Field(..., min_length=1, description="Natural language question")
    db_config: DatabaseConnectionConfig
    llm_config: LLMConfig
    inputs: dict[str, Any] | None = Field(default=None, description="Values for required inputs")
    context: str | None = Field(default=None, description="Client-held conversation context")

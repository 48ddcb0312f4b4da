"""API response models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_serializer

from smart_postgres.core.types import FieldMeta, InputType, Pagination, ResponseType
from smart_postgres.models.base import CamelModel
from smart_postgres.models.schema import DatabaseSchema
from smart_postgres.utils.rows import json_safe_rows


class RequiredInput(CamelModel):
    """A value the user must supply before SQL can be generated."""

    name: str = Field(..., description="Input name, e.g. start_date")
    description: str = Field(..., description="What the input means")
    type: InputType = Field(..., description="text, number or date")
    example: str = Field(..., description="Example value; dates are YYYY-MM-DD")


class PaginationInfo(CamelModel):
    """Pagination metadata."""

    page: int = Field(..., description="Current page number (1-indexed)")
    page_size: int = Field(..., description="Results per page")
    total: int = Field(..., description="Total number of rows")
    total_pages: int = Field(..., description="Total number of pages")
    has_more: bool = Field(default=False, description="Whether there are more pages")

    @classmethod
    def from_pagination(cls, pagination: Pagination | None) -> "PaginationInfo | None":
        """Convert executor pagination state, passing None through."""
        if pagination is None:
            return None
        return cls(**pagination._asdict())


class FieldInfo(CamelModel):
    """Result column metadata."""

    name: str
    data_type: str

    @classmethod
    def from_fields(cls, fields: list[FieldMeta]) -> list["FieldInfo"]:
        """Convert executor field metadata."""
        return [cls(name=f.name, data_type=f.data_type) for f in fields]


class QueryResponse(CamelModel):
    """Response model for the natural language query endpoint."""

    success: Literal[True] = True
    type: ResponseType = Field(..., description="query, explanation or input_required")
    query: str | None = Field(default=None, description="Generated SQL")
    result: list[dict[str, Any]] | None = Field(default=None, description="Result rows")
    fields: list[FieldInfo] | None = Field(default=None, description="Result columns")
    validation: str | None = Field(default=None, description="SUCCESS or a note on what to fix")
    pagination: PaginationInfo | None = Field(default=None, description="Null for aggregate queries")
    required_inputs: list[RequiredInput] | None = Field(default=None, description="Inputs to collect")
    explanation: str | None = Field(default=None, description="Plain-language answer")
    session_id: str | None = Field(default=None, description="Session the query was recorded in")

    @field_serializer("result")
    def _serialize_result(self, result: list[dict[str, Any]] | None) -> list[dict[str, Any]] | None:
        return None if result is None else json_safe_rows(result)


class ErrorResponse(CamelModel):
    """Uniform failure body."""

    success: Literal[False] = False
    error: str
    suggestion: str | None = None


class SchemaResponse(CamelModel):
    """Response model for schema introspection."""

    success: bool = True
    db_schema: DatabaseSchema = Field(default_factory=DatabaseSchema, alias="schema")
    error: str | None = None


class ConnectionTestResponse(CamelModel):
    """Response model for connection checks."""

    success: bool
    error: str | None = None


class ExecuteResponse(CamelModel):
    """Response model for paginated execution."""

    success: Literal[True] = True
    data: list[dict[str, Any]]
    fields: list[FieldInfo] = Field(default_factory=list)
    pagination: PaginationInfo | None = None

    @field_serializer("data")
    def _serialize_data(self, data: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return json_safe_rows(data)


class Timing(CamelModel):
    """Wall-clock timing of a raw execution."""

    start_time: datetime
    duration: int = Field(..., description="Milliseconds")


class RawExecuteResponse(CamelModel):
    """Response model for raw SQL execution."""

    success: Literal[True] = True
    data: list[dict[str, Any]]
    row_count: int
    fields: list[FieldInfo] = Field(default_factory=list)
    timing: Timing

    @field_serializer("data")
    def _serialize_data(self, data: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return json_safe_rows(data)


class HealthResponse(CamelModel):
    """Health check response."""

    status: Literal["healthy"]
    version: str
    active_sessions: int = 0
    cached_schemas: int = 0


class GenerateResponse(CamelModel):
    """Response model for SQL generation without execution."""

    success: Literal[True] = True
    query: str


class SessionDeletedResponse(CamelModel):
    """Response model for ending a session."""

    success: Literal[True] = True
    session_id: str

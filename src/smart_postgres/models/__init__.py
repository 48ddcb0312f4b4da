"""Data models for Smart Postgres."""

from smart_postgres.models.connection import DatabaseConnectionConfig, LLMConfig
from smart_postgres.models.requests import (
    ConnectionTestRequest,
    ExecuteRequest,
    ExecuteSQLRequest,
    GenerateRequest,
    QueryRequest,
    SchemaRequest,
)
from smart_postgres.models.responses import (
    ConnectionTestResponse,
    ErrorResponse,
    ExecuteResponse,
    FieldInfo,
    GenerateResponse,
    HealthResponse,
    PaginationInfo,
    QueryResponse,
    RawExecuteResponse,
    RequiredInput,
    SchemaResponse,
    SessionDeletedResponse,
    Timing,
)
from smart_postgres.models.schema import (
    Column,
    Constraint,
    DatabaseSchema,
    ForeignKey,
    Index,
    Table,
    TableStatistics,
)

__all__ = [
    "DatabaseConnectionConfig",
    "LLMConfig",
    "QueryRequest",
    "GenerateRequest",
    "SchemaRequest",
    "ConnectionTestRequest",
    "ExecuteRequest",
    "ExecuteSQLRequest",
    "QueryResponse",
    "GenerateResponse",
    "ErrorResponse",
    "SchemaResponse",
    "ConnectionTestResponse",
    "ExecuteResponse",
    "RawExecuteResponse",
    "Timing",
    "FieldInfo",
    "HealthResponse",
    "SessionDeletedResponse",
    "PaginationInfo",
    "RequiredInput",
    "Column",
    "Constraint",
    "DatabaseSchema",
    "ForeignKey",
    "Index",
    "Table",
    "TableStatistics",
]

"""Core module with exceptions and type definitions."""

from smart_postgres.core.exceptions import (
    DatabaseConnectionError,
    InvalidLLMJSONError,
    LLMConfigurationError,
    LLMResponseError,
    LLMResponseValidationError,
    MissingRequiredInputError,
    SmartPostgresError,
    SQLExecutionError,
    WriteOperationError,
)
from smart_postgres.core.types import (
    ExecutionResult,
    FieldMeta,
    InputType,
    LLMProvider,
    Pagination,
    QueryType,
    ResponseType,
)

__all__ = [
    "SmartPostgresError",
    "DatabaseConnectionError",
    "WriteOperationError",
    "SQLExecutionError",
    "LLMResponseError",
    "InvalidLLMJSONError",
    "LLMResponseValidationError",
    "LLMConfigurationError",
    "MissingRequiredInputError",
    "ExecutionResult",
    "FieldMeta",
    "InputType",
    "LLMProvider",
    "Pagination",
    "QueryType",
    "ResponseType",
]

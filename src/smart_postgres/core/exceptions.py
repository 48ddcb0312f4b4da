"""Custom exceptions for Smart Postgres."""

from typing import Any


class SmartPostgresError(Exception):
    """Base exception for Smart Postgres errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DatabaseConnectionError(SmartPostgresError):
    """Raised when a database connection cannot be established."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message, {"code": code})
        self.code = code


class WriteOperationError(SmartPostgresError):
    """Raised when SQL would modify the database."""

    def __init__(self, message: str, sql: str | None = None, keyword: str | None = None):
        super().__init__(message, {"sql": sql, "keyword": keyword})
        self.sql = sql
        self.keyword = keyword


class SQLExecutionError(SmartPostgresError):
    """Raised when the database rejects a statement."""

    def __init__(
        self,
        message: str,
        sql: str | None = None,
        code: str | None = None,
        position: str | None = None,
        detail: str | None = None,
        hint: str | None = None,
        where: str | None = None,
    ):
        super().__init__(
            message,
            {
                "sql": sql,
                "code": code,
                "position": position,
                "detail": detail,
                "hint": hint,
                "where": where,
            },
        )
        self.sql = sql
        self.code = code
        self.position = position
        self.detail = detail
        self.hint = hint
        self.where = where

    @classmethod
    def from_driver_error(cls, error: Any, sql: str | None = None) -> "SQLExecutionError":
        """Build from an asyncpg error, keeping its diagnostic fields."""
        return cls(
            str(error),
            sql=sql,
            code=getattr(error, "sqlstate", None),
            position=getattr(error, "position", None),
            detail=getattr(error, "detail", None),
            hint=getattr(error, "hint", None),
            where=getattr(error, "where", None),
        )


class LLMResponseError(SmartPostgresError):
    """Raised when the LLM returns something unusable."""

    def __init__(self, message: str, response: str | None = None):
        super().__init__(message, {"response": response})
        self.response = response


class InvalidLLMJSONError(LLMResponseError):
    """Raised when the LLM response is not valid JSON."""

    pass


class LLMResponseValidationError(LLMResponseError):
    """Raised when the LLM JSON does not have the expected shape."""

    pass


class LLMConfigurationError(SmartPostgresError):
    """Raised when an LLM client cannot be built from the given config."""

    pass


class MissingRequiredInputError(SmartPostgresError):
    """Raised when SQL generation reports a missing user input."""

    pass


class SessionNotFoundError(SmartPostgresError):
    """Raised when a session is not found."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", {"session_id": session_id})
        self.session_id = session_id

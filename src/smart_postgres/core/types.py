"""Type definitions for Smart Postgres."""

from enum import Enum
from typing import Any, NamedTuple


class QueryType(str, Enum):
    """What the classifier decided a question needs."""

    NEEDS_QUERY = "NEEDS_QUERY"
    NEEDS_EXPLANATION = "NEEDS_EXPLANATION"
    NEEDS_INPUT = "NEEDS_INPUT"


class ResponseType(str, Enum):
    """Kinds of successful /query responses."""

    QUERY = "query"
    EXPLANATION = "explanation"
    INPUT_REQUIRED = "input_required"


class InputType(str, Enum):
    """Allowed types for user-supplied query inputs."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


class LLMProvider(str, Enum):
    """Supported LLM backends."""

    OPENROUTER = "openrouter"
    OLLAMA = "ollama"
    OPENAI_COMPATIBLE = "openai-compatible"


class FieldMeta(NamedTuple):
    """Name and PostgreSQL type of a result column."""

    name: str
    data_type: str


class Pagination(NamedTuple):
    """Pagination state for one executed page."""

    page: int
    page_size: int
    total: int
    total_pages: int
    has_more: bool

    @classmethod
    def compute(cls, page: int, page_size: int, total: int) -> "Pagination":
        """Derive page count and has_more from the total row count."""
        total_pages = (total + page_size - 1) // page_size
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=total_pages,
            has_more=page * page_size < total,
        )


class ExecutionResult(NamedTuple):
    """Result of SQL execution.

    ``pagination`` is None for aggregate queries, which are returned whole.
    """

    rows: list[dict[str, Any]]
    fields: list[FieldMeta]
    pagination: Pagination | None

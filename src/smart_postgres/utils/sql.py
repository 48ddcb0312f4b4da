"""SQL text handling: cleanup, the read-only guard, and pagination wrappers.

The read-only guard is a keyword heuristic over the statement text, not a
parser. Comments, odd whitespace (``delete\\nfrom``) or keyword obfuscation
can slip past it, which is why the database session is also forced into
read-only mode. ``strict=True`` adds a sqlglot parse that only admits
read queries.
"""

import logging
import re

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from smart_postgres.core.exceptions import WriteOperationError

logger = logging.getLogger(__name__)

WRITE_OPERATIONS = (
    "delete",
    "insert",
    "update",
    "truncate",
    "create",
    "alter",
    "drop",
    "grant",
    "revoke",
    "lock",
    "vacuum",
    "copy",
    "refresh materialized view",
    "merge",
    "call",
    "do",
)

WRITE_OPERATION_MESSAGE = (
    "Write operations are not allowed in read-only mode. "
    "Only SELECT and read-only operations are permitted."
)

_OPENING_FENCE = re.compile(r"^```(\w+)?\n")
_CLOSING_FENCE = re.compile(r"\n```$")
_TRAILING_SEMICOLONS = re.compile(r"[\s;]+$")
_CTE_HEADER = re.compile(r"\w+\s*(?:\(.*?\))?\s*as\s*\(")
_AGGREGATE = re.compile(r"\b(count|sum|avg|min|max|group\s+by)\b", re.IGNORECASE)

# Node types that write, or that sqlglot could not parse into a known statement.
_WRITE_NODE_NAMES = (
    "Insert",
    "Update",
    "Delete",
    "Merge",
    "Create",
    "Drop",
    "Alter",
    "AlterTable",
    "TruncateTable",
    "Copy",
    "Grant",
    "Command",
    "Into",
)
_WRITE_NODES = tuple(getattr(exp, name) for name in _WRITE_NODE_NAMES if hasattr(exp, name))


def strip_markdown(sql: str) -> str:
    """Remove a surrounding ``` or ```sql code fence."""
    if not sql.startswith("```"):
        return sql
    sql = _OPENING_FENCE.sub("", sql)
    sql = _CLOSING_FENCE.sub("", sql)
    return sql.strip()


def strip_trailing_semicolons(sql: str) -> str:
    """Strip trailing semicolons and whitespace, keeping internal ones."""
    return _TRAILING_SEMICOLONS.sub("", sql)


def clean_sql(sql: str) -> str:
    """Normalize LLM or user SQL into a single executable statement body."""
    return strip_trailing_semicolons(strip_markdown(sql.strip()).strip())


def find_write_operation(sql: str) -> str | None:
    """Return the write keyword a statement (or one of its CTEs) starts with.

    Args:
        sql: Raw SQL, possibly wrapped in a markdown fence.

    Returns:
        The matched keyword, or None if the statement looks read-only.
    """
    normalized = clean_sql(sql).lower()

    for op in WRITE_OPERATIONS:
        if normalized.startswith(op + " "):
            return op

    with_index = normalized.find("with ")
    if with_index == -1:
        return None

    after_with = normalized[with_index + 5 :]
    for match in _CTE_HEADER.finditer(after_with):
        body = after_with[match.end() :].strip()
        for op in WRITE_OPERATIONS:
            if body.startswith(op + " "):
                return op
    return None


def _parse_is_read_only(sql: str) -> bool:
    """Check with sqlglot that every statement is a pure read query."""
    try:
        statements = sqlglot.parse(sql, dialect="postgres")
    except SqlglotError as e:
        logger.warning("Strict guard could not parse SQL: %s", e)
        return False

    statements = [stmt for stmt in statements if stmt is not None]
    if not statements:
        return False

    for stmt in statements:
        if not isinstance(stmt, exp.Query):
            return False
        if stmt.find(*_WRITE_NODES) is not None:
            return False
    return True


def check_read_only(sql: str, strict: bool = False) -> None:
    """Reject SQL that could write to the database.

    Args:
        sql: The SQL to check.
        strict: Also require a successful sqlglot parse into read-only queries.

    Raises:
        WriteOperationError: If the SQL looks like a write.
    """
    keyword = find_write_operation(sql)
    if keyword is not None:
        logger.warning("Rejected write operation '%s'", keyword)
        raise WriteOperationError(WRITE_OPERATION_MESSAGE, sql=sql, keyword=keyword)

    if strict and not _parse_is_read_only(clean_sql(sql)):
        logger.warning("Rejected statement in strict mode")
        raise WriteOperationError(WRITE_OPERATION_MESSAGE, sql=sql)


def is_aggregate_query(sql: str) -> bool:
    """Whether the statement aggregates and should be returned unpaged."""
    return _AGGREGATE.search(sql) is not None


def build_count_sql(sql: str) -> str:
    """Wrap a statement so it returns its row count as ``total``."""
    return f"WITH user_query AS ({sql}) SELECT COUNT(*) AS total FROM user_query"


def build_page_sql(sql: str, page: int, page_size: int) -> str:
    """Wrap a statement so it returns one 1-based page of rows."""
    offset = (page - 1) * page_size
    return f"WITH user_query AS ({sql}) SELECT * FROM user_query LIMIT {page_size} OFFSET {offset}"

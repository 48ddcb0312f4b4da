"""PostgreSQL database service using asyncpg."""

import errno
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from smart_postgres.config import Settings, get_settings
from smart_postgres.core.exceptions import DatabaseConnectionError, SQLExecutionError
from smart_postgres.core.types import ExecutionResult, FieldMeta, Pagination
from smart_postgres.models.connection import DatabaseConnectionConfig
from smart_postgres.utils.sql import (
    build_count_sql,
    build_page_sql,
    check_read_only,
    clean_sql,
    is_aggregate_query,
)
from smart_postgres.utils.rows import json_safe_rows

logger = logging.getLogger(__name__)

CONNECTION_REFUSED_MESSAGE = (
    "Could not connect to the database server. "
    "Please check if the host and port are correct and the server is running."
)
AUTH_FAILED_MESSAGE = "Authentication failed. Please check your username and password."
UNKNOWN_DATABASE_MESSAGE = "Database does not exist. Please check the database name."


def describe_connection_error(error: BaseException) -> tuple[str, str | None]:
    """Turn a connection failure into a user-friendly message.

    Returns:
        Tuple of (message, code) where code is ECONNREFUSED or a SQLSTATE.
    """
    if isinstance(error, ConnectionRefusedError) or getattr(error, "errno", None) == errno.ECONNREFUSED:
        return CONNECTION_REFUSED_MESSAGE, "ECONNREFUSED"

    sqlstate = getattr(error, "sqlstate", None)
    if sqlstate == "28P01":
        return AUTH_FAILED_MESSAGE, sqlstate
    if sqlstate == "3D000":
        return UNKNOWN_DATABASE_MESSAGE, sqlstate

    return str(error) or error.__class__.__name__, sqlstate


class DatabaseService:
    """Read-only access to one client-supplied PostgreSQL database.

    A service owns its own pool; use it as an async context manager so the
    pool is closed whatever happens inside the block.
    """

    def __init__(
        self, config: DatabaseConnectionConfig, settings: Settings | None = None
    ) -> None:
        self._config = config
        self._settings = settings or get_settings()
        self._pool: asyncpg.Pool | None = None

    @property
    def config(self) -> DatabaseConnectionConfig:
        return self._config

    async def connect(self) -> None:
        """Initialize a small connection pool in read-only mode."""
        timeout = self._settings.sql_timeout_seconds
        password = self._config.password.get_secret_value()
        try:
            self._pool = await asyncpg.create_pool(
                host=self._config.host,
                port=self._config.port,
                database=self._config.database,
                user=self._config.user,
                password=password or None,
                ssl="require" if self._config.ssl else None,
                min_size=1,
                max_size=5,
                command_timeout=timeout,
                server_settings={
                    "default_transaction_read_only": "on",
                    "statement_timeout": str(timeout * 1000),
                },
            )
        except Exception as e:
            message, code = describe_connection_error(e)
            logger.error("Failed to connect to %s: %s", self._config.cache_key, e)
            raise DatabaseConnectionError(message, code=code) from e

    async def close(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "DatabaseService":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        """Get a connection from the pool."""
        if not self._pool:
            await self.connect()
        async with self._pool.acquire() as connection:  # type: ignore
            yield connection

    @staticmethod
    async def _fetch(
        conn: asyncpg.Connection, sql: str
    ) -> tuple[list[dict[str, Any]], list[FieldMeta]]:
        """Run a statement and return rows plus column metadata."""
        stmt = await conn.prepare(sql)
        records = await stmt.fetch()
        fields = [FieldMeta(attr.name, attr.type.name) for attr in stmt.get_attributes()]
        return json_safe_rows(records), fields

    @staticmethod
    def _execution_error(error: Exception, sql: str) -> SQLExecutionError:
        logger.error(
            "Database error: %s (code=%s position=%s detail=%s hint=%s where=%s)",
            error,
            getattr(error, "sqlstate", None),
            getattr(error, "position", None),
            getattr(error, "detail", None),
            getattr(error, "hint", None),
            getattr(error, "where", None),
        )
        if isinstance(error, asyncpg.PostgresError):
            return SQLExecutionError.from_driver_error(error, sql=sql)
        if isinstance(error, TimeoutError):
            detail = str(error) or "statement timed out"
        else:
            detail = str(error) or error.__class__.__name__
        return SQLExecutionError(f"Query execution failed: {detail}", sql=sql)

    async def execute_paginated(self, sql: str, page: int, page_size: int) -> ExecutionResult:
        """Execute a read query and return one page of it.

        Aggregate queries are executed once and returned whole with no
        pagination. Everything else is counted and paged through the same
        wrapped statement so the total matches the rows.

        Args:
            sql: The SQL to run; fences and trailing semicolons are removed.
            page: 1-based page number.
            page_size: Rows per page.

        Raises:
            WriteOperationError: If the SQL fails the read-only guard.
            SQLExecutionError: If the database rejects the statement.
        """
        statement = clean_sql(sql)
        check_read_only(statement, strict=self._settings.strict_sql_guard)

        async with self.get_connection() as conn:
            try:
                if is_aggregate_query(statement):
                    rows, fields = await self._fetch(conn, statement)
                    logger.info("Aggregate query returned %d rows", len(rows))
                    return ExecutionResult(rows=rows, fields=fields, pagination=None)

                total = await conn.fetchval(build_count_sql(statement))
                rows, fields = await self._fetch(conn, build_page_sql(statement, page, page_size))
            except Exception as e:
                raise self._execution_error(e, statement) from e

        pagination = Pagination.compute(page, page_size, int(total or 0))
        logger.info(
            "Returned page %d/%d (%d of %d rows)",
            page,
            pagination.total_pages,
            len(rows),
            pagination.total,
        )
        return ExecutionResult(rows=rows, fields=fields, pagination=pagination)

    async def execute_query(self, sql: str) -> ExecutionResult:
        """Execute a read query and return every row, unpaged."""
        statement = clean_sql(sql)
        check_read_only(statement, strict=self._settings.strict_sql_guard)

        async with self.get_connection() as conn:
            try:
                rows, fields = await self._fetch(conn, statement)
            except Exception as e:
                raise self._execution_error(e, statement) from e
        return ExecutionResult(rows=rows, fields=fields, pagination=None)

    async def fetchval(self, sql: str) -> Any:
        """Run trusted catalog SQL and return the first value."""
        async with self.get_connection() as conn:
            try:
                return await conn.fetchval(sql)
            except Exception as e:
                raise self._execution_error(e, sql) from e

    async def test_connection(self) -> bool:
        """Test database connection.

        Raises:
            DatabaseConnectionError: With a friendly message when unreachable.
        """
        async with self.get_connection() as conn:
            await conn.fetchval("SELECT 1")
        return True

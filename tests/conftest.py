"""Pytest configuration and fixtures."""

import re
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage

from smart_postgres.config import get_settings
from smart_postgres.models.connection import DatabaseConnectionConfig, LLMConfig
from smart_postgres.models.schema import DatabaseSchema


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch):
    """Set test environment variables and drop cached settings."""
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("STRICT_SQL_GUARD", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db_config() -> DatabaseConnectionConfig:
    """Connection details for a database that is never contacted."""
    return DatabaseConnectionConfig(
        host="localhost",
        port=5432,
        database="shop",
        user="reader",
        password="secret",
    )


@pytest.fixture
def db_config_payload() -> dict[str, Any]:
    """Connection details as the client sends them."""
    return {
        "host": "localhost",
        "port": 5432,
        "database": "shop",
        "user": "reader",
        "password": "secret",
    }


@pytest.fixture
def llm_config_payload() -> dict[str, Any]:
    """LLM settings as the client sends them."""
    return {"provider": "openrouter", "apiKey": "test-key"}


@pytest.fixture
def llm_config(llm_config_payload) -> LLMConfig:
    return LLMConfig.model_validate(llm_config_payload)


@pytest.fixture
def sample_schema() -> DatabaseSchema:
    """A small shop schema."""
    return DatabaseSchema.model_validate(
        {
            "tables": [
                {
                    "name": "users",
                    "columns": [
                        {"name": "id", "type": "int4", "nullable": False, "isPrimary": True},
                        {"name": "email", "type": "varchar", "nullable": False},
                        {"name": "created_at", "type": "timestamptz"},
                    ],
                    "statistics": {"totalRows": 1200, "sizeInBytes": 65536},
                },
                {
                    "name": "orders",
                    "columns": [
                        {"name": "id", "type": "int4", "nullable": False, "isPrimary": True},
                        {"name": "user_id", "type": "int4"},
                        {"name": "total", "type": "numeric"},
                        {"name": "status", "type": "text"},
                    ],
                    "foreignKeys": [
                        {
                            "column": "user_id",
                            "referencedTable": "users",
                            "referencedColumn": "id",
                            "onDelete": "CASCADE",
                            "onUpdate": "NO ACTION",
                        }
                    ],
                },
            ]
        }
    )


# Markers that identify which prompt the LLM is answering.
PROMPT_MARKERS = {
    "context": "Analyze this database query request",
    "classify": 'Respond with ONLY "NEEDS_QUERY"',
    "inputs": "identify what additional inputs are needed",
    "sql": "generate a PostgreSQL query that answers the question",
    "explain": "provide a clear and concise explanation about the database structure",
    "validate": "Did the query successfully answer the original question?",
    "suggest": "explain what went wrong and suggest how to fix it",
}


class ScriptedLLM:
    """Chat model double that answers each prompt kind from a script.

    Script values are strings, or exceptions to raise. Prompts with no
    scripted answer fail the call.
    """

    def __init__(self, **answers: Any) -> None:
        self.answers = answers
        self.prompts: list[str] = []
        self.ainvoke = AsyncMock(side_effect=self._answer)

    def kinds(self) -> list[str]:
        """Prompt kinds seen so far, in order."""
        return [self._kind(p) for p in self.prompts]

    @staticmethod
    def _kind(prompt: str) -> str:
        for kind, marker in PROMPT_MARKERS.items():
            if marker in prompt:
                return kind
        return "unknown"

    async def _answer(self, messages, *args, **kwargs) -> AIMessage:
        prompt = messages[-1].content
        self.prompts.append(prompt)
        answer = self.answers.get(self._kind(prompt))
        if answer is None:
            raise RuntimeError(f"No scripted answer for {self._kind(prompt)} prompt")
        if isinstance(answer, Exception):
            raise answer
        return AIMessage(content=answer)


@pytest.fixture
def scripted_llm():
    """Factory for ScriptedLLM instances."""
    return ScriptedLLM


class FakeStatement:
    """Prepared statement over an in-memory row list."""

    def __init__(self, rows: list[dict[str, Any]], sql: str) -> None:
        self._rows = rows
        self._sql = sql

    async def fetch(self) -> list[dict[str, Any]]:
        match = re.search(r"LIMIT (\d+) OFFSET (\d+)", self._sql)
        if match is None:
            return list(self._rows)
        limit, offset = int(match.group(1)), int(match.group(2))
        return self._rows[offset : offset + limit]

    def get_attributes(self) -> list[MagicMock]:
        if not self._rows:
            return []
        attributes = []
        for name in self._rows[0]:
            attr = MagicMock()
            attr.name = name
            attr.type.name = "int4"
            attributes.append(attr)
        return attributes


class FakeConnection:
    """Connection double that answers count and page queries."""

    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows
        self.executed: list[str] = []

    async def fetchval(self, sql: str) -> Any:
        self.executed.append(sql)
        if "COUNT(*) AS total FROM user_query" in sql:
            return len(self.rows)
        return 1

    async def prepare(self, sql: str) -> FakeStatement:
        self.executed.append(sql)
        return FakeStatement(self.rows, sql)


class FakePool:
    """Pool double handing out one FakeConnection."""

    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.closed = False

    def acquire(self):
        pool = self

        class _Acquire:
            async def __aenter__(self):
                return pool.connection

            async def __aexit__(self, *exc_info):
                return False

        return _Acquire()

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_rows():
    """Factory for ``n`` numbered rows."""

    def _make(n: int) -> list[dict[str, Any]]:
        return [{"id": i} for i in range(1, n + 1)]

    return _make


@pytest.fixture
def fake_pool_factory():
    """Factory for a FakePool over the given rows."""

    def _make(rows: list[dict[str, Any]]) -> FakePool:
        return FakePool(FakeConnection(rows))

    return _make

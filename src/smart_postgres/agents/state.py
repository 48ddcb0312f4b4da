"""LangGraph state definitions for the query pipeline."""

from typing import Any, TypedDict

from langchain_core.runnables import RunnableConfig

from smart_postgres.core.types import FieldMeta, Pagination, QueryType
from smart_postgres.models.responses import RequiredInput
from smart_postgres.models.schema import DatabaseSchema


class AgentState(TypedDict):
    """State for the natural language query graph."""

    # Request
    question: str
    inputs: dict[str, Any] | None
    client_context: str | None
    page: int
    page_size: int

    # Introspected schema of the target database
    schema: DatabaseSchema

    # Conversation context handed to every prompt
    context: str
    intent: str | None
    entities: list[str]

    # Classification
    query_type: QueryType | None

    # Explanation path
    explanation: str | None

    # Input path
    required_inputs: list[RequiredInput]

    # Query path
    generated_sql: str | None
    results: list[dict[str, Any]] | None
    fields: list[FieldMeta]
    pagination: Pagination | None
    validation: str | None


def create_initial_state(
    question: str,
    schema: DatabaseSchema,
    inputs: dict[str, Any] | None = None,
    client_context: str | None = None,
    page: int = 1,
    page_size: int = 200,
) -> AgentState:
    """Create initial state for a new question."""
    return AgentState(
        question=question,
        inputs=inputs,
        client_context=client_context,
        page=page,
        page_size=page_size,
        schema=schema,
        context="",
        intent=None,
        entities=[],
        query_type=None,
        explanation=None,
        required_inputs=[],
        generated_sql=None,
        results=None,
        fields=[],
        pagination=None,
        validation=None,
    )


def get_dependency(config: RunnableConfig, name: str, required: bool = True) -> Any:
    """Fetch a request-scoped dependency from ``config["configurable"]``.

    Raises:
        KeyError: If a required dependency was not supplied.
    """
    configurable = (config or {}).get("configurable", {})
    if required and configurable.get(name) is None:
        raise KeyError(f"Missing '{name}' in graph config")
    return configurable.get(name)

"""Tests for graph routing and full pipeline runs."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from langgraph.graph import END

from smart_postgres.agents.graph import (
    get_query_graph,
    route_after_elicitation,
    route_by_query_type,
)
from smart_postgres.agents.state import create_initial_state
from smart_postgres.core.exceptions import WriteOperationError
from smart_postgres.core.types import (
    ExecutionResult,
    FieldMeta,
    InputType,
    Pagination,
    QueryType,
)
from smart_postgres.models.responses import RequiredInput
from smart_postgres.services.context_manager import ContextManager

DATE_INPUTS = json.dumps(
    [{"name": "start_date", "description": "First day of the week", "type": "date", "example": "2024-06-03"}]
)
CREATED_SQL = "SELECT * FROM users WHERE created_at >= '2024-06-03'"


@pytest.fixture
def db():
    """Database service double returning one page of users."""
    service = MagicMock()
    service.execute_paginated = AsyncMock(
        return_value=ExecutionResult(
            rows=[{"id": 1}, {"id": 2}],
            fields=[FieldMeta("id", "int4")],
            pagination=Pagination.compute(1, 200, 2),
        )
    )
    return service


class TestRouting:
    """Test conditional edges."""

    def test_explanation(self, sample_schema):
        state = create_initial_state("what tables exist?", sample_schema)
        state["query_type"] = QueryType.NEEDS_EXPLANATION
        assert route_by_query_type(state) == "explainer"

    def test_needs_input_without_inputs(self, sample_schema):
        state = create_initial_state("users since a date", sample_schema)
        state["query_type"] = QueryType.NEEDS_INPUT
        assert route_by_query_type(state) == "input_elicitor"

    def test_needs_input_with_inputs(self, sample_schema):
        state = create_initial_state("users since a date", sample_schema, inputs={"start_date": "2024-01-01"})
        state["query_type"] = QueryType.NEEDS_INPUT
        assert route_by_query_type(state) == "sql_generator"

    def test_needs_input_with_empty_inputs(self, sample_schema):
        state = create_initial_state("users since a date", sample_schema, inputs={})
        state["query_type"] = QueryType.NEEDS_INPUT
        assert route_by_query_type(state) == "sql_generator"

    def test_needs_query(self, sample_schema):
        state = create_initial_state("count users", sample_schema)
        state["query_type"] = QueryType.NEEDS_QUERY
        assert route_by_query_type(state) == "sql_generator"

    def test_after_elicitation_with_inputs(self, sample_schema):
        state = create_initial_state("q", sample_schema)
        state["required_inputs"] = [
            RequiredInput(name="start_date", description="d", type=InputType.DATE, example="2024-01-01")
        ]
        assert route_after_elicitation(state) == END

    def test_after_elicitation_without_inputs(self, sample_schema):
        state = create_initial_state("q", sample_schema)
        assert route_after_elicitation(state) == "sql_generator"


class TestQueryGraph:
    """Run the compiled graph with scripted LLM answers."""

    @pytest.mark.asyncio
    async def test_input_required_stops_before_sql(self, sample_schema, scripted_llm, db):
        llm = scripted_llm(classify="NEEDS_INPUT", inputs=DATE_INPUTS)
        state = create_initial_state("show me users created last week", sample_schema)

        result = await get_query_graph().ainvoke(state, config={"configurable": {"llm": llm, "db": db}})

        assert [i.name for i in result["required_inputs"]] == ["start_date"]
        assert result["generated_sql"] is None
        assert llm.kinds() == ["classify", "inputs"]
        db.execute_paginated.assert_not_called()

    @pytest.mark.asyncio
    async def test_query_with_inputs(self, sample_schema, scripted_llm, db):
        llm = scripted_llm(classify="NEEDS_INPUT", sql=CREATED_SQL, validate="SUCCESS")
        state = create_initial_state(
            "show me users created last week", sample_schema, inputs={"start_date": "2024-06-03"}
        )

        result = await get_query_graph().ainvoke(state, config={"configurable": {"llm": llm, "db": db}})

        assert result["generated_sql"] == CREATED_SQL
        assert result["results"] == [{"id": 1}, {"id": 2}]
        assert result["pagination"].total == 2
        assert result["validation"] == "SUCCESS"
        assert llm.kinds() == ["classify", "sql", "validate"]
        db.execute_paginated.assert_awaited_once_with(CREATED_SQL, page=1, page_size=200)

    @pytest.mark.asyncio
    async def test_nothing_to_elicit_falls_through(self, sample_schema, scripted_llm, db):
        llm = scripted_llm(classify="NEEDS_INPUT", inputs="[]", sql="SELECT * FROM users", validate="SUCCESS")
        state = create_initial_state("show me users", sample_schema)

        result = await get_query_graph().ainvoke(state, config={"configurable": {"llm": llm, "db": db}})

        assert result["required_inputs"] == []
        assert result["generated_sql"] == "SELECT * FROM users"
        assert llm.kinds() == ["classify", "inputs", "sql", "validate"]

    @pytest.mark.asyncio
    async def test_explanation(self, sample_schema, scripted_llm, db):
        llm = scripted_llm(classify="NEEDS_EXPLANATION", explain="Orders belong to users.")
        state = create_initial_state("how are orders related to users?", sample_schema)

        result = await get_query_graph().ainvoke(state, config={"configurable": {"llm": llm, "db": db}})

        assert result["explanation"] == "Orders belong to users."
        assert result["generated_sql"] is None
        db.execute_paginated.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_never_executes(self, sample_schema, scripted_llm, db):
        llm = scripted_llm(classify="NEEDS_QUERY", sql="DELETE FROM users")
        state = create_initial_state("remove every user", sample_schema)

        with pytest.raises(WriteOperationError):
            await get_query_graph().ainvoke(state, config={"configurable": {"llm": llm, "db": db}})

        db.execute_paginated.assert_not_called()

    @pytest.mark.asyncio
    async def test_session_context_reaches_prompts(self, sample_schema, scripted_llm, db):
        manager = ContextManager()
        manager.initialize(sample_schema)
        manager.add_query_to_context("show all users", "SELECT * FROM users", True, result=[{"id": 1}])
        llm = scripted_llm(
            context=json.dumps({"needsContext": True, "intent": "filter users", "entities": ["users"]}),
            classify="NEEDS_QUERY",
            sql="SELECT * FROM users WHERE id = 1",
            validate="SUCCESS",
        )
        state = create_initial_state("show only those users with id 1", sample_schema)

        await get_query_graph().ainvoke(
            state, config={"configurable": {"llm": llm, "db": db, "context_manager": manager}}
        )

        sql_prompt = llm.prompts[llm.kinds().index("sql")]
        assert "User asked: show all users" in sql_prompt
        assert "SQL generated: SELECT * FROM users" in sql_prompt

"""Tests for the pipeline nodes."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from smart_postgres.agents.nodes.classifier import classifier_node, parse_query_type
from smart_postgres.agents.nodes.context import context_node
from smart_postgres.agents.nodes.executor import executor_node
from smart_postgres.agents.nodes.explainer import explainer_node
from smart_postgres.agents.nodes.input_elicitor import input_elicitor_node, parse_required_inputs
from smart_postgres.agents.nodes.result_validator import (
    VALIDATION_UNAVAILABLE,
    result_validator_node,
    validate_query_result,
)
from smart_postgres.agents.nodes.sql_generator import sql_generator_node
from smart_postgres.agents.nodes.validator import validator_node
from smart_postgres.agents.state import create_initial_state, get_dependency
from smart_postgres.core.exceptions import (
    InvalidLLMJSONError,
    LLMResponseError,
    LLMResponseValidationError,
    MissingRequiredInputError,
    WriteOperationError,
)
from smart_postgres.core.types import ExecutionResult, FieldMeta, InputType, Pagination, QueryType
from smart_postgres.services.context_manager import ContextManager


@pytest.fixture
def state(sample_schema):
    return create_initial_state("show me users created last week", sample_schema)


def _config(**deps):
    return {"configurable": deps}


class TestParseQueryType:
    """Test classifier reply normalization."""

    @pytest.mark.parametrize(
        "response,expected",
        [
            ("NEEDS_QUERY", QueryType.NEEDS_QUERY),
            ("READY", QueryType.NEEDS_QUERY),
            ("  needs_input\n", QueryType.NEEDS_INPUT),
            ('"NEEDS_EXPLANATION"', QueryType.NEEDS_EXPLANATION),
            ("NEEDS_INPUT.", QueryType.NEEDS_INPUT),
            ("The answer is NEEDS_EXPLANATION because it asks about tables", QueryType.NEEDS_EXPLANATION),
            ("I think this is READY to run", QueryType.NEEDS_QUERY),
            ("no idea", QueryType.NEEDS_QUERY),
            ("", QueryType.NEEDS_QUERY),
        ],
    )
    def test_normalization(self, response, expected):
        assert parse_query_type(response) == expected


class TestParseRequiredInputs:
    """Test validation of the elicited inputs."""

    def test_valid_inputs(self):
        response = json.dumps(
            [
                {"name": "start_date", "description": "Start", "type": "date", "example": "2024-01-01"},
                {"name": "min_total", "description": "Minimum", "type": "number", "example": 100},
            ]
        )

        inputs = parse_required_inputs(f"```json\n{response}\n```")

        assert [i.name for i in inputs] == ["start_date", "min_total"]
        assert inputs[0].type == InputType.DATE
        assert inputs[1].example == "100"

    def test_empty_array(self):
        assert parse_required_inputs("[]") == []

    @pytest.mark.parametrize("missing", ["name", "description", "type", "example"])
    def test_missing_field_names_index(self, missing):
        item = {"name": "user_id", "description": "User", "type": "number", "example": "7"}
        item.pop(missing)
        response = json.dumps([{"name": "a", "description": "b", "type": "text", "example": "c"}, item])

        with pytest.raises(LLMResponseValidationError, match="Input at index 1 is missing required fields"):
            parse_required_inputs(response)

    def test_blank_field_is_missing(self):
        response = json.dumps([{"name": "", "description": "b", "type": "text", "example": "c"}])

        with pytest.raises(LLMResponseValidationError, match="index 0"):
            parse_required_inputs(response)

    def test_invalid_type(self):
        response = json.dumps([{"name": "flag", "description": "b", "type": "boolean", "example": "true"}])

        with pytest.raises(LLMResponseValidationError, match='Invalid type "boolean" for input "flag"'):
            parse_required_inputs(response)

    def test_bad_date_example(self):
        response = json.dumps([{"name": "start_date", "description": "b", "type": "date", "example": "01/02/2024"}])

        with pytest.raises(
            LLMResponseValidationError,
            match='Invalid date format for input "start_date". Expected YYYY-MM-DD',
        ):
            parse_required_inputs(response)

    def test_not_json(self):
        with pytest.raises(InvalidLLMJSONError, match="Invalid JSON response from LLM"):
            parse_required_inputs("start_date: a date")

    def test_not_an_array(self):
        with pytest.raises(LLMResponseValidationError, match="expected an array of inputs"):
            parse_required_inputs('{"name": "x"}')

    def test_json_and_shape_errors_distinguished(self):
        assert not issubclass(InvalidLLMJSONError, LLMResponseValidationError)
        assert issubclass(InvalidLLMJSONError, LLMResponseError)


class TestClassifierNode:
    @pytest.mark.asyncio
    async def test_prompt_carries_schema_query_and_context(self, state, scripted_llm):
        llm = scripted_llm(classify="NEEDS_INPUT")
        state["context"] = "User asked: show all users"

        result = await classifier_node(state, _config(llm=llm))

        assert result == {"query_type": QueryType.NEEDS_INPUT}
        prompt = llm.prompts[0]
        assert "Table: users\nColumns: id (int4)" in prompt
        assert "User Query: show me users created last week" in prompt
        assert "User asked: show all users" in prompt

    @pytest.mark.asyncio
    async def test_default_context_text(self, state, scripted_llm):
        llm = scripted_llm(classify="NEEDS_QUERY")

        await classifier_node(state, _config(llm=llm))

        assert "No previous context available." in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_llm_errors_propagate(self, state, scripted_llm):
        llm = scripted_llm(classify=RuntimeError("rate limited"))

        with pytest.raises(RuntimeError, match="rate limited"):
            await classifier_node(state, _config(llm=llm))

    @pytest.mark.asyncio
    async def test_missing_llm(self, state):
        with pytest.raises(KeyError):
            await classifier_node(state, _config())


class TestInputElicitorNode:
    @pytest.mark.asyncio
    async def test_returns_inputs(self, state, scripted_llm):
        answer = json.dumps(
            [{"name": "start_date", "description": "First day", "type": "date", "example": "2024-06-01"}]
        )
        llm = scripted_llm(inputs=answer)

        result = await input_elicitor_node(state, _config(llm=llm))

        assert result["required_inputs"][0].name == "start_date"


class TestSQLGeneratorNode:
    @pytest.mark.asyncio
    async def test_inputs_in_prompt(self, state, scripted_llm):
        llm = scripted_llm(sql="SELECT * FROM users WHERE created_at >= '2024-06-01'")
        state["inputs"] = {"start_date": "2024-06-01"}

        result = await sql_generator_node(state, _config(llm=llm))

        assert result["generated_sql"].startswith("SELECT * FROM users")
        assert 'User Inputs: {"start_date": "2024-06-01"}' in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_no_inputs_text(self, state, scripted_llm):
        llm = scripted_llm(sql="SELECT 1")

        await sql_generator_node(state, _config(llm=llm))

        assert "User Inputs: No additional inputs provided" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_missing_input_sentinel_raises(self, state, scripted_llm):
        llm = scripted_llm(sql="ERROR: Missing required input: start date of the range")

        with pytest.raises(MissingRequiredInputError) as exc_info:
            await sql_generator_node(state, _config(llm=llm))

        assert exc_info.value.message == "ERROR: Missing required input: start date of the range"

    @pytest.mark.asyncio
    async def test_other_error_reply_raises(self, state, scripted_llm):
        llm = scripted_llm(sql="ERROR: cannot answer")

        with pytest.raises(LLMResponseError):
            await sql_generator_node(state, _config(llm=llm))


class TestValidatorNode:
    def test_cleans_sql(self, state):
        state["generated_sql"] = "```sql\nSELECT 1;\n```"

        assert validator_node(state, _config()) == {"generated_sql": "SELECT 1"}

    def test_rejects_write(self, state):
        state["generated_sql"] = "WITH x AS (DELETE FROM users RETURNING *) SELECT * FROM x"

        with pytest.raises(WriteOperationError):
            validator_node(state, _config())


class TestExecutorNode:
    @pytest.mark.asyncio
    async def test_executes_requested_page(self, state):
        pagination = Pagination.compute(2, 200, 450)
        db = MagicMock()
        db.execute_paginated = AsyncMock(
            return_value=ExecutionResult([{"id": 201}], [FieldMeta("id", "int4")], pagination)
        )
        state.update(generated_sql="SELECT * FROM users", page=2)

        result = await executor_node(state, _config(db=db))

        db.execute_paginated.assert_awaited_once_with("SELECT * FROM users", page=2, page_size=200)
        assert result["pagination"] == pagination
        assert result["results"] == [{"id": 201}]


class TestResultValidator:
    @pytest.mark.asyncio
    async def test_success(self, scripted_llm):
        llm = scripted_llm(validate="SUCCESS")
        assert await validate_query_result(llm, "SELECT 1", [{"x": 1}], "one?") == "SUCCESS"

    @pytest.mark.asyncio
    async def test_llm_failure_means_success(self, scripted_llm):
        llm = scripted_llm(validate=RuntimeError("down"))
        assert await validate_query_result(llm, "SELECT 1", [], "one?") == "SUCCESS"

    @pytest.mark.asyncio
    async def test_result_sample_bounded(self, scripted_llm):
        llm = scripted_llm(validate="SUCCESS")
        rows = [{"id": i} for i in range(500)]

        await validate_query_result(llm, "SELECT * FROM users", rows, "all users")

        assert "... and 450 more rows" in llm.prompts[0]
        assert '{"id": 499}' not in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_node_reports_unavailable_on_unexpected_error(self, state, scripted_llm):
        llm = scripted_llm(validate="SUCCESS")
        state.update(generated_sql="SELECT 1", results=42)

        result = await result_validator_node(state, _config(llm=llm))
        assert result == {"validation": VALIDATION_UNAVAILABLE}

    @pytest.mark.asyncio
    async def test_node_passes_fix_description(self, state, scripted_llm):
        llm = scripted_llm(validate="Filter on created_at instead of updated_at")
        state.update(generated_sql="SELECT 1", results=[])

        result = await result_validator_node(state, _config(llm=llm))

        assert result["validation"] == "Filter on created_at instead of updated_at"


class TestExplainerNode:
    @pytest.mark.asyncio
    async def test_explanation(self, state, scripted_llm):
        llm = scripted_llm(explain="There are two tables.")

        assert await explainer_node(state, _config(llm=llm)) == {"explanation": "There are two tables."}


class TestContextNode:
    @pytest.mark.asyncio
    async def test_client_context_only(self, state):
        state["client_context"] = "Earlier: list users"

        result = await context_node(state, _config())

        assert result == {"context": "Earlier: list users", "intent": None, "entities": []}

    @pytest.mark.asyncio
    async def test_merges_session_context(self, state, sample_schema, scripted_llm):
        manager = ContextManager()
        manager.initialize(sample_schema)
        manager.add_query_to_context("show me all users", "SELECT * FROM users", True)
        llm = scripted_llm(
            context=json.dumps({"needsContext": True, "intent": "recent signups", "entities": ["users"]})
        )
        state["client_context"] = "client notes"

        result = await context_node(state, _config(llm=llm, context_manager=manager))

        assert result["context"].startswith("client notes\n\n")
        assert "User asked: show me all users" in result["context"]
        assert result["intent"] == "recent signups"
        assert result["entities"] == ["users"]


class TestGetDependency:
    def test_optional_missing(self):
        assert get_dependency({"configurable": {}}, "db", required=False) is None

    def test_required_missing(self):
        with pytest.raises(KeyError):
            get_dependency({}, "db")

"""Required input identification node."""

import json
import logging
import re
from typing import Any

from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.nodes.classifier import NO_CONTEXT
from smart_postgres.agents.state import AgentState, get_dependency
from smart_postgres.core.exceptions import InvalidLLMJSONError, LLMResponseValidationError
from smart_postgres.core.types import InputType
from smart_postgres.models.responses import RequiredInput
from smart_postgres.services.llm import invoke_text, strip_json_fence

logger = logging.getLogger(__name__)

IDENTIFY_INPUTS_PROMPT = """You are a PostgreSQL expert. Given the following database schema, natural language query, and context,
identify what additional inputs are needed from the user to generate a complete SQL query.

IMPORTANT: ALWAYS identify inputs for:
- Any specific dates or date ranges mentioned
- Any specific IDs or values used for filtering
- Any thresholds or limits (e.g., "more than X", "at least Y")
- Any time periods (e.g., "last 7 days", "this month")

Database Schema:
{schema}

User Query: {query}

Previous Context:
{context}

RULES:
1. Return a valid JSON array of required inputs
2. Each input must have: name, description, type, and example
3. Use descriptive names (e.g., "start_date", "user_id", "min_amount")
4. Type must be one of: "text", "number", "date"
5. Return an empty array [] if no inputs are needed
6. DO NOT include comments or explanations in the JSON"""

REQUIRED_FIELDS = ("name", "description", "type", "example")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_VALID_TYPES = {t.value for t in InputType}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_required_inputs(response: str) -> list[RequiredInput]:
    """Parse and validate the LLM's list of inputs to collect.

    Raises:
        InvalidLLMJSONError: If the reply is not JSON.
        LLMResponseValidationError: If the JSON is not a list of valid inputs.
    """
    cleaned = strip_json_fence(response)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise InvalidLLMJSONError("Invalid JSON response from LLM", response=response) from e

    if not isinstance(parsed, list):
        raise LLMResponseValidationError(
            "Invalid response format from LLM: expected an array of inputs", response=response
        )

    inputs = []
    for index, item in enumerate(parsed):
        if not isinstance(item, dict) or any(_is_blank(item.get(f)) for f in REQUIRED_FIELDS):
            raise LLMResponseValidationError(
                f"Input at index {index} is missing required fields", response=response
            )

        name, input_type, example = item["name"], item["type"], str(item["example"])
        if input_type not in _VALID_TYPES:
            raise LLMResponseValidationError(
                f'Invalid type "{input_type}" for input "{name}"', response=response
            )
        if input_type == InputType.DATE.value and not _DATE.match(example):
            raise LLMResponseValidationError(
                f'Invalid date format for input "{name}". Expected YYYY-MM-DD', response=response
            )

        inputs.append(
            RequiredInput(
                name=str(name),
                description=str(item["description"]),
                type=InputType(input_type),
                example=example,
            )
        )
    return inputs


async def input_elicitor_node(state: AgentState, config: RunnableConfig) -> dict:
    """Ask the LLM which named, typed values the user must supply."""
    llm = get_dependency(config, "llm")
    prompt = IDENTIFY_INPUTS_PROMPT.format(
        schema=state["schema"].to_prompt_text(),
        query=state["question"],
        context=state.get("context") or NO_CONTEXT,
    )
    response = await invoke_text(llm, prompt)
    required_inputs = parse_required_inputs(response)
    logger.info("Required inputs: %s", [i.name for i in required_inputs])

    return {"required_inputs": required_inputs}

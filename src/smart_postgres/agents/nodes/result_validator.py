"""Result validation node."""

import json
import logging
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.state import AgentState, get_dependency
from smart_postgres.services.llm import invoke_text

logger = logging.getLogger(__name__)

SUCCESS = "SUCCESS"
VALIDATION_UNAVAILABLE = "Could not validate query result"

# Rows shown to the LLM when judging a result
RESULT_SAMPLE_ROWS = 50

VALIDATION_PROMPT = """Given the following:
Original question: {question}
SQL Query: {sql}
Query Result: {result}

Did the query successfully answer the original question? If not, what needs to be fixed?
Return ONLY "SUCCESS" if the query worked well, or a brief explanation of what needs to be fixed if it didn't."""


def _format_result(rows: list[dict[str, Any]] | None) -> str:
    rows = rows or []
    text = json.dumps(rows[:RESULT_SAMPLE_ROWS], default=str)
    if len(rows) > RESULT_SAMPLE_ROWS:
        text += f"\n... and {len(rows) - RESULT_SAMPLE_ROWS} more rows"
    return text


async def validate_query_result(
    llm: BaseChatModel, sql: str, rows: list[dict[str, Any]] | None, question: str
) -> str:
    """Ask the LLM whether the rows answer the question.

    Returns "SUCCESS" when the LLM call fails or returns nothing.
    """
    prompt = VALIDATION_PROMPT.format(question=question, sql=sql, result=_format_result(rows))
    try:
        response = await invoke_text(llm, prompt)
    except Exception as e:
        logger.warning("Result validation failed: %s", e)
        return SUCCESS
    return response or SUCCESS


async def result_validator_node(state: AgentState, config: RunnableConfig) -> dict:
    """Attach the LLM's verdict on the result."""
    llm = get_dependency(config, "llm")
    try:
        validation = await validate_query_result(
            llm, state["generated_sql"], state.get("results"), state["question"]
        )
    except Exception as e:
        logger.warning("Could not validate query result: %s", e)
        validation = VALIDATION_UNAVAILABLE

    logger.info("Validation result: %s", validation)
    return {"validation": validation}

"""SQL generation node."""

import json
import logging

from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.nodes.classifier import NO_CONTEXT
from smart_postgres.agents.state import AgentState, get_dependency
from smart_postgres.core.exceptions import LLMResponseError, MissingRequiredInputError
from smart_postgres.services.llm import invoke_text

logger = logging.getLogger(__name__)

MISSING_INPUT_SENTINEL = "ERROR: Missing required input:"
NO_INPUTS = "No additional inputs provided"

SQL_GENERATION_PROMPT = """You are a PostgreSQL expert. Given the following database schema, natural language query, user inputs, and context,
generate a PostgreSQL query that answers the question.

IMPORTANT RULES:
1. NEVER use placeholder values like 'your_specific_date', 'your_id', etc.
2. ALWAYS use the provided user inputs for specific values
3. If a required input is missing, generate an error message instead of a query
4. Return ONLY the raw SQL query with no formatting, quotes, backticks, or markdown
5. Use the context from previous queries to understand what the user is asking about
6. For queries about PostgreSQL monitoring, performance, or administration:
   - You can use system catalogs (pg_*) and views even if not in the schema
   - Common monitoring views include:
     * pg_stat_activity: For current session/query information
     * pg_locks: For lock information
     * pg_stat_statements: For query performance statistics
     * pg_stat_database: For database-wide statistics
   - Check that necessary extensions (e.g., pg_stat_statements) are enabled

Database Schema:
{schema}

User Query: {query}

User Inputs: {inputs}

Previous Context:
{context}

The response should be a valid PostgreSQL query with no additional formatting or explanation.
If any required inputs are missing, respond with "{sentinel} <input description>\""""


async def sql_generator_node(state: AgentState, config: RunnableConfig) -> dict:
    """Generate one SQL statement for the question.

    Raises:
        MissingRequiredInputError: If the LLM reports a missing input.
        LLMResponseError: If the LLM answers with any other error instead of SQL.
    """
    llm = get_dependency(config, "llm")
    inputs = state.get("inputs")

    prompt = SQL_GENERATION_PROMPT.format(
        schema=state["schema"].to_prompt_text(),
        query=state["question"],
        inputs=json.dumps(inputs, default=str) if inputs else NO_INPUTS,
        context=state.get("context") or NO_CONTEXT,
        sentinel=MISSING_INPUT_SENTINEL,
    )
    sql = await invoke_text(llm, prompt)
    logger.info("Generated SQL: %s", sql)

    if sql.startswith(MISSING_INPUT_SENTINEL):
        raise MissingRequiredInputError(sql)
    if sql.startswith("ERROR:"):
        raise LLMResponseError(sql, response=sql)

    return {"generated_sql": sql}

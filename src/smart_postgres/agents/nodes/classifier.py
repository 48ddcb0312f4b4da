"""Query classification node."""

import logging
import re

from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.state import AgentState, get_dependency
from smart_postgres.core.types import QueryType
from smart_postgres.services.llm import invoke_text

logger = logging.getLogger(__name__)

NO_CONTEXT = "No previous context available."

CLASSIFY_PROMPT = """You are a PostgreSQL expert. Given the following database schema, natural language query, and context,
determine if this requires:
1. A SQL query to fetch data
2. A natural language explanation about the database structure
3. Additional user input before generating SQL

For queries about PostgreSQL monitoring, performance, or administration:
   - You can use system catalogs (pg_*) and views even if not in the schema
   - Common monitoring views include:
     * pg_stat_activity: For current session/query information
     * pg_locks: For lock information
     * pg_stat_statements: For query performance statistics
     * pg_stat_database: For database-wide statistics
   - Check that necessary extensions (e.g., pg_stat_statements) are enabled
  Try returning a query first, and only if that fails, provide an explanation.

IMPORTANT: If the query involves ANY of these, it ALWAYS requires user input:
- Specific dates or date ranges
- Specific IDs or values to filter by
- Thresholds or limits (e.g., "more than X", "at least Y")
- Time periods (e.g., "last 7 days", "this month")

Database Schema:
{schema}

User Query: {query}

Previous Context:
{context}

Respond with ONLY "NEEDS_QUERY", "NEEDS_EXPLANATION", or "NEEDS_INPUT"."""

_TOKEN = re.compile(r"\b(NEEDS_QUERY|NEEDS_EXPLANATION|NEEDS_INPUT|READY)\b")


def parse_query_type(response: str) -> QueryType:
    """Map the classifier's reply onto a QueryType.

    READY is an older spelling of NEEDS_QUERY. If the reply wraps a token in
    prose, the first token found wins; anything else means NEEDS_QUERY.
    """
    normalized = response.strip().strip("\"'`.").strip().upper()
    if normalized == "READY":
        return QueryType.NEEDS_QUERY
    if normalized in QueryType.__members__:
        return QueryType(normalized)

    match = _TOKEN.search(normalized)
    if match:
        token = match.group(1)
        return QueryType.NEEDS_QUERY if token == "READY" else QueryType(token)

    logger.warning("Unrecognized query type %r, treating as NEEDS_QUERY", response)
    return QueryType.NEEDS_QUERY


async def classifier_node(state: AgentState, config: RunnableConfig) -> dict:
    """Decide whether the question needs a query, an explanation or more input."""
    llm = get_dependency(config, "llm")

    prompt = CLASSIFY_PROMPT.format(
        schema=state["schema"].to_prompt_text(),
        query=state["question"],
        context=state.get("context") or NO_CONTEXT,
    )
    response = await invoke_text(llm, prompt)
    query_type = parse_query_type(response)
    logger.info("Query type: %s", query_type.value)

    return {"query_type": query_type}

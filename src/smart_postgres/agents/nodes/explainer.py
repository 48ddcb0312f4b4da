"""Schema explanation node."""

from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.state import AgentState, get_dependency
from smart_postgres.services.llm import invoke_text

SCHEMA_EXPLANATION_PROMPT = """You are a postgresql database expert. Given the following database schema and user's question,
provide a clear and concise explanation about the database structure.
For queries about PostgreSQL monitoring, performance, or administration:
   - You can use system catalogs (pg_*) and views even if not in the schema
   - Common monitoring views include:
     * pg_stat_activity: For current session/query information
     * pg_locks: For lock information
     * pg_stat_statements: For query performance statistics
     * pg_stat_database: For database-wide statistics
   - Check that necessary extensions (e.g., pg_stat_statements) are enabled

Database Schema:
{schema}

User Question: {query}

Provide a natural language explanation that answers the user's question about the database structure."""


async def explainer_node(state: AgentState, config: RunnableConfig) -> dict:
    """Answer a question about the database structure in plain language."""
    llm = get_dependency(config, "llm")
    prompt = SCHEMA_EXPLANATION_PROMPT.format(
        schema=state["schema"].to_prompt_text(),
        query=state["question"],
    )
    return {"explanation": await invoke_text(llm, prompt)}

"""Read-only guard node."""

from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.state import AgentState, get_dependency
from smart_postgres.config import get_settings
from smart_postgres.utils.sql import check_read_only, clean_sql


def validator_node(state: AgentState, config: RunnableConfig) -> dict:
    """Reject generated SQL that could write, before it reaches the database.

    Raises:
        WriteOperationError: If the SQL fails the read-only guard.
    """
    settings = get_dependency(config, "settings", required=False) or get_settings()
    sql = clean_sql(state.get("generated_sql") or "")
    check_read_only(sql, strict=settings.strict_sql_guard)
    return {"generated_sql": sql}

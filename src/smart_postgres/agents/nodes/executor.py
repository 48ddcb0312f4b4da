"""SQL execution node."""

from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.state import AgentState, get_dependency


async def executor_node(state: AgentState, config: RunnableConfig) -> dict:
    """Execute the validated SQL and fetch the requested page."""
    db = get_dependency(config, "db")
    result = await db.execute_paginated(
        state["generated_sql"], page=state["page"], page_size=state["page_size"]
    )
    return {
        "results": result.rows,
        "fields": result.fields,
        "pagination": result.pagination,
    }

"""LangGraph agent module."""

from smart_postgres.agents.graph import get_query_graph
from smart_postgres.agents.state import AgentState, create_initial_state

__all__ = ["AgentState", "create_initial_state", "get_query_graph"]

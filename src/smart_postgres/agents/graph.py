"""LangGraph pipeline definition."""

from functools import lru_cache
from typing import Literal

from langgraph.graph import END, StateGraph

from smart_postgres.agents.nodes.classifier import classifier_node
from smart_postgres.agents.nodes.context import context_node
from smart_postgres.agents.nodes.executor import executor_node
from smart_postgres.agents.nodes.explainer import explainer_node
from smart_postgres.agents.nodes.input_elicitor import input_elicitor_node
from smart_postgres.agents.nodes.result_validator import result_validator_node
from smart_postgres.agents.nodes.sql_generator import sql_generator_node
from smart_postgres.agents.nodes.validator import validator_node
from smart_postgres.agents.state import AgentState
from smart_postgres.core.types import QueryType


def route_by_query_type(
    state: AgentState,
) -> Literal["explainer", "input_elicitor", "sql_generator"]:
    """Pick the path for the classified question.

    NEEDS_INPUT only asks for inputs when the request carries none.
    """
    query_type = state.get("query_type")
    if query_type == QueryType.NEEDS_EXPLANATION:
        return "explainer"
    if query_type == QueryType.NEEDS_INPUT and state.get("inputs") is None:
        return "input_elicitor"
    return "sql_generator"


def route_after_elicitation(state: AgentState) -> Literal["sql_generator", "__end__"]:
    """Stop to ask the user, unless the LLM found nothing to ask for."""
    if state.get("required_inputs"):
        return END
    return "sql_generator"


def _build_graph() -> StateGraph:
    """Build the graph structure without compiling.

    Graph flow:
    1. Context - merge client and session context
    2. Classifier - NEEDS_QUERY, NEEDS_EXPLANATION or NEEDS_INPUT
       - Explanation -> Explainer -> END
       - Input needed and none given -> Input Elicitor -> END
    3. SQL Generator - one statement from schema, question, inputs, context
    4. Validator - read-only guard
    5. Executor - paginated execution
    6. Result Validator - LLM verdict on the rows
    """
    graph = StateGraph(AgentState)

    graph.add_node("context", context_node)
    graph.add_node("classifier", classifier_node)
    graph.add_node("explainer", explainer_node)
    graph.add_node("input_elicitor", input_elicitor_node)
    graph.add_node("sql_generator", sql_generator_node)
    graph.add_node("validator", validator_node)
    graph.add_node("executor", executor_node)
    graph.add_node("result_validator", result_validator_node)

    graph.set_entry_point("context")
    graph.add_edge("context", "classifier")

    graph.add_conditional_edges(
        "classifier",
        route_by_query_type,
        {
            "explainer": "explainer",
            "input_elicitor": "input_elicitor",
            "sql_generator": "sql_generator",
        },
    )
    graph.add_edge("explainer", END)

    graph.add_conditional_edges(
        "input_elicitor",
        route_after_elicitation,
        {
            "sql_generator": "sql_generator",
            END: END,
        },
    )

    graph.add_edge("sql_generator", "validator")
    graph.add_edge("validator", "executor")
    graph.add_edge("executor", "result_validator")
    graph.add_edge("result_validator", END)

    return graph


@lru_cache
def get_query_graph():
    """Get the compiled query graph.

    The graph holds no request state; the LLM, database service and context
    manager are passed per run in ``config["configurable"]``.
    """
    return _build_graph().compile()

"""Conversation context node."""

import logging

from langchain_core.runnables import RunnableConfig

from smart_postgres.agents.state import AgentState, get_dependency

logger = logging.getLogger(__name__)


async def context_node(state: AgentState, config: RunnableConfig) -> dict:
    """Build the context text for the prompts.

    Merges the client-held context string with the session's relevance
    ranked history when a session context manager is configured.
    """
    client_context = state.get("client_context")
    context_manager = get_dependency(config, "context_manager", required=False)

    if context_manager is None or not context_manager.initialized:
        return {"context": client_context or "", "intent": None, "entities": []}

    llm = get_dependency(config, "llm")
    question = state["question"]
    analysis = await context_manager.analyze_context(question, llm)
    session_context = context_manager.build_context(question, analysis)

    context = "\n\n".join(part for part in (client_context, session_context) if part)
    if session_context:
        logger.info("Using session context (%d chars)", len(session_context))

    return {
        "context": context,
        "intent": analysis.intent or None,
        "entities": analysis.entities,
    }

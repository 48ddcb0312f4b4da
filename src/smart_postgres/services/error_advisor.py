"""Plain-language suggestions for failed queries."""

import logging

from langchain_core.language_models.chat_models import BaseChatModel

from smart_postgres.services.llm import invoke_text

logger = logging.getLogger(__name__)

NO_SUGGESTION = "No suggestion available"

ERROR_SUGGESTION_PROMPT = """You are a PostgreSQL expert. Given the following error and the user's original query,
explain what went wrong and suggest how to fix it. Be concise but helpful.

Error: {error}
User's Question: {question}

Provide a clear explanation of the error and how to resolve it."""


async def get_suggestion_for_error(
    llm: BaseChatModel | None, error: str, question: str
) -> str | None:
    """Ask the LLM how to fix an error.

    Returns:
        The suggestion, or None if there is no LLM or the call fails.
    """
    if llm is None:
        return None

    try:
        suggestion = await invoke_text(
            llm, ERROR_SUGGESTION_PROMPT.format(error=error, question=question)
        )
    except Exception as e:
        logger.warning("Failed to get error suggestion: %s", e)
        return None
    return suggestion or None

"""Chat model construction and plain-text invocation.

A chat model is built from the client's LLMConfig for every request and
handed down explicitly; nothing here keeps a module-level client.
"""

import logging
import re

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from smart_postgres.config import Settings, get_settings
from smart_postgres.core.exceptions import LLMConfigurationError
from smart_postgres.core.types import LLMProvider
from smart_postgres.models.connection import LLMConfig

logger = logging.getLogger(__name__)

# Local OpenAI-compatible servers usually ignore the key but the client requires one.
PLACEHOLDER_API_KEY = "EMPTY"

_JSON_FENCE = re.compile(r"```json\n?|\n?```")


def _openrouter_headers(settings: Settings) -> dict[str, str]:
    return {
        "HTTP-Referer": settings.openrouter_referer,
        "X-Title": settings.openrouter_title,
    }


def create_chat_model(config: LLMConfig, settings: Settings | None = None) -> BaseChatModel:
    """Build a fresh chat model for one request.

    Args:
        config: Client-supplied provider settings.
        settings: Server settings; temperature and timeout come from here.

    Raises:
        LLMConfigurationError: If the provider cannot be configured.
    """
    settings = settings or get_settings()

    if config.provider == LLMProvider.OPENROUTER:
        resolved = config.resolve(default_headers=_openrouter_headers(settings))
    else:
        resolved = config.resolve()

    api_key = resolved.api_key.get_secret_value()

    try:
        if resolved.provider == LLMProvider.OLLAMA:
            llm: BaseChatModel = ChatOllama(
                model=resolved.model,
                base_url=resolved.base_url,
                temperature=settings.llm_temperature,
            )
        elif resolved.provider == LLMProvider.OPENROUTER:
            if not api_key:
                raise LLMConfigurationError("An API key is required for the openrouter provider")
            llm = ChatOpenAI(
                model=resolved.model,
                api_key=api_key,
                base_url=resolved.base_url,
                default_headers=resolved.default_headers,
                temperature=settings.llm_temperature,
                timeout=settings.llm_timeout_seconds,
            )
        elif resolved.provider == LLMProvider.OPENAI_COMPATIBLE:
            llm = ChatOpenAI(
                model=resolved.model,
                api_key=api_key or PLACEHOLDER_API_KEY,
                base_url=resolved.base_url,
                organization=resolved.organization,
                default_headers=resolved.default_headers,
                temperature=settings.llm_temperature,
                timeout=settings.llm_timeout_seconds,
            )
        else:
            raise LLMConfigurationError(f"Unsupported LLM provider: {resolved.provider}")
    except LLMConfigurationError:
        raise
    except Exception as e:
        raise LLMConfigurationError(f"Failed to initialize LLM: {e}") from e

    logger.info("Initialized %s chat model %s", resolved.provider.value, resolved.model)
    return llm


async def invoke_text(llm: BaseChatModel, prompt: str, system: str | None = None) -> str:
    """Send one prompt and return the stripped text of the reply."""
    messages: list[BaseMessage] = []
    if system:
        messages.append(SystemMessage(content=system))
    messages.append(HumanMessage(content=prompt))

    response = await llm.ainvoke(messages)
    content = response.content
    if not isinstance(content, str):
        # Some providers return a list of content blocks
        content = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block) for block in content
        )
    return content.strip()


def strip_json_fence(text: str) -> str:
    """Remove ```json fences an LLM may wrap around a JSON answer."""
    return _JSON_FENCE.sub("", text).strip()

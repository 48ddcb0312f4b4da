"""Natural language query endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from smart_postgres.agents.graph import get_query_graph
from smart_postgres.agents.nodes.sql_generator import sql_generator_node
from smart_postgres.agents.nodes.validator import validator_node
from smart_postgres.agents.state import create_initial_state
from smart_postgres.api.dependencies import (
    error_message,
    error_response,
    get_app_settings,
    get_schema_cache,
    get_session_manager,
)
from smart_postgres.config import Settings
from smart_postgres.core.exceptions import LLMConfigurationError
from smart_postgres.core.types import ResponseType
from smart_postgres.models.requests import GenerateRequest, QueryRequest
from smart_postgres.models.responses import (
    ErrorResponse,
    FieldInfo,
    GenerateResponse,
    PaginationInfo,
    QueryResponse,
)
from smart_postgres.services.database import DatabaseService
from smart_postgres.services.error_advisor import NO_SUGGESTION, get_suggestion_for_error
from smart_postgres.services.introspection import get_schema
from smart_postgres.services.llm import create_chat_model
from smart_postgres.services.schema_cache import SchemaCache
from smart_postgres.services.sessions import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_ERROR = "An error occurred during query processing"


def _check_page(page: int, settings: Settings) -> None:
    if page > settings.max_page:
        raise HTTPException(status_code=422, detail=f"page must be at most {settings.max_page}")


def _build_response(final_state: dict, session_id: str | None) -> QueryResponse:
    if final_state.get("explanation") is not None:
        return QueryResponse(
            type=ResponseType.EXPLANATION,
            explanation=final_state["explanation"],
            session_id=session_id,
        )

    if final_state.get("required_inputs"):
        return QueryResponse(
            type=ResponseType.INPUT_REQUIRED,
            required_inputs=final_state["required_inputs"],
            session_id=session_id,
        )

    return QueryResponse(
        type=ResponseType.QUERY,
        query=final_state.get("generated_sql"),
        result=final_state.get("results") or [],
        fields=FieldInfo.from_fields(final_state.get("fields") or []),
        validation=final_state.get("validation"),
        pagination=PaginationInfo.from_pagination(final_state.get("pagination")),
        session_id=session_id,
    )


@router.post(
    "/query",
    response_model=QueryResponse,
    responses={500: {"model": ErrorResponse}},
)
async def query(
    request: QueryRequest,
    settings: Settings = Depends(get_app_settings),
    schema_cache: SchemaCache = Depends(get_schema_cache),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """Answer a natural language question with SQL, an explanation, or an input request.

    Every failure becomes ``{success: false, error, suggestion}`` with a
    best-effort suggestion from the LLM.
    """
    _check_page(request.page, settings)
    logger.info("Query: %r (page %d, session %s)", request.query, request.page, request.session_id)

    try:
        llm = create_chat_model(request.llm_config, settings)
    except LLMConfigurationError as e:
        logger.error("LLM initialization error: %s", e)
        return error_response(500, e.message, NO_SUGGESTION)

    db = DatabaseService(request.db_config, settings)
    context_manager = None
    try:
        schema = await get_schema(db, schema_cache)
        if request.session_id:
            context_manager = session_manager.get_or_create(request.session_id, schema)

        state = create_initial_state(
            request.query,
            schema,
            inputs=request.inputs,
            client_context=request.context,
            page=request.page,
            page_size=settings.query_page_size,
        )
        config = {
            "configurable": {
                "llm": llm,
                "db": db,
                "context_manager": context_manager,
                "settings": settings,
            }
        }
        final_state = await get_query_graph().ainvoke(state, config=config)

    except Exception as e:
        message = error_message(e, DEFAULT_ERROR)
        logger.error("Error in query processing: %s", message)
        if context_manager is not None:
            context_manager.add_query_to_context(
                request.query, getattr(e, "sql", None) or "", success=False, error=message
            )
        suggestion = await get_suggestion_for_error(llm, message, request.query)
        return error_response(500, message, suggestion or NO_SUGGESTION)

    finally:
        await db.close()

    response = _build_response(final_state, request.session_id)

    if context_manager is not None:
        # Explanations and input requests ran no SQL
        context_manager.add_query_to_context(
            request.query,
            final_state.get("generated_sql") or "",
            success=response.type == ResponseType.QUERY,
            result=final_state.get("results"),
            intent=final_state.get("intent"),
            entities=final_state.get("entities"),
        )

    return response


@router.post(
    "/query/generate",
    response_model=GenerateResponse,
    responses={500: {"model": ErrorResponse}},
)
async def generate(
    request: GenerateRequest,
    settings: Settings = Depends(get_app_settings),
    schema_cache: SchemaCache = Depends(get_schema_cache),
):
    """Generate read-only SQL for a question without executing it."""
    try:
        llm = create_chat_model(request.llm_config, settings)
    except LLMConfigurationError as e:
        return error_response(500, e.message)

    db = DatabaseService(request.db_config, settings)
    try:
        schema = await get_schema(db, schema_cache)
        state = create_initial_state(
            request.query,
            schema,
            inputs=request.inputs,
            client_context=request.context,
        )
        state["context"] = request.context or ""
        config = {"configurable": {"llm": llm, "settings": settings}}

        state.update(await sql_generator_node(state, config))
        state.update(validator_node(state, config))
    except Exception as e:
        message = error_message(e, DEFAULT_ERROR)
        logger.error("SQL generation failed: %s", message)
        return error_response(500, message)
    finally:
        await db.close()

    return GenerateResponse(query=state["generated_sql"])

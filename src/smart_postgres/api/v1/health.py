"""Health check endpoint."""

from fastapi import APIRouter, Depends

from smart_postgres import __version__
from smart_postgres.api.dependencies import get_schema_cache, get_session_manager
from smart_postgres.models.responses import HealthResponse
from smart_postgres.services.schema_cache import SchemaCache
from smart_postgres.services.sessions import SessionManager

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    schema_cache: SchemaCache = Depends(get_schema_cache),
    session_manager: SessionManager = Depends(get_session_manager),
):
    return HealthResponse(
        status="healthy",
        version=__version__,
        active_sessions=len(session_manager),
        cached_schemas=len(schema_cache),
    )

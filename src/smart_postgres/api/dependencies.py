"""FastAPI dependencies for app-scoped services."""

from fastapi import Request
from fastapi.responses import JSONResponse

from smart_postgres.config import Settings, get_settings
from smart_postgres.models.responses import ErrorResponse
from smart_postgres.services.schema_cache import SchemaCache
from smart_postgres.services.sessions import SessionManager


def get_app_settings() -> Settings:
    return get_settings()


def get_schema_cache(request: Request) -> SchemaCache:
    """Schema cache created in the app lifespan."""
    return request.app.state.schema_cache


def get_session_manager(request: Request) -> SessionManager:
    """Session manager created in the app lifespan."""
    return request.app.state.session_manager


def error_response(status_code: int, error: str, suggestion: str | None = None) -> JSONResponse:
    """Uniform ``{success: false, error, suggestion}`` body."""
    body = ErrorResponse(error=error, suggestion=suggestion)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def error_message(error: Exception, default: str) -> str:
    """Best human-readable message for an exception."""
    return getattr(error, "message", None) or str(error) or default

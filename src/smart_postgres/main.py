"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_postgres import __version__
from smart_postgres.api import router as api_router
from smart_postgres.config import get_settings
from smart_postgres.core.logging import configure_logging
from smart_postgres.services.schema_cache import SchemaCache
from smart_postgres.services.sessions import SessionManager


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(settings.log_level)

    # Startup: app-scoped schema cache and conversation sessions
    app.state.schema_cache = SchemaCache(ttl_seconds=settings.schema_cache_ttl_seconds)
    app.state.session_manager = SessionManager(settings)

    yield

    # Shutdown: drop cached schemas and end all sessions
    app.state.session_manager.clear()
    app.state.schema_cache.clear()


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Smart Postgres",
        description="Natural language questions over PostgreSQL, read-only",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Smart Postgres",
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()

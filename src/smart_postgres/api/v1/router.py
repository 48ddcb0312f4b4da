"""Main API router, mounted under /api."""

from fastapi import APIRouter

from smart_postgres.api.v1.execute import router as execute_router
from smart_postgres.api.v1.health import router as health_router
from smart_postgres.api.v1.query import router as query_router
from smart_postgres.api.v1.schema import router as schema_router
from smart_postgres.api.v1.sessions import router as sessions_router

router = APIRouter(prefix="/api")

router.include_router(health_router, tags=["health"])
router.include_router(query_router, tags=["query"])
router.include_router(schema_router, tags=["schema"])
router.include_router(execute_router, tags=["execute"])
router.include_router(sessions_router, tags=["sessions"])

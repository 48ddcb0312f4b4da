"""Schema and connection check endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from smart_postgres.api.dependencies import error_message, get_app_settings, get_schema_cache
from smart_postgres.config import Settings
from smart_postgres.core.exceptions import DatabaseConnectionError
from smart_postgres.models.requests import ConnectionTestRequest, SchemaRequest
from smart_postgres.models.responses import ConnectionTestResponse, SchemaResponse
from smart_postgres.services.database import DatabaseService, describe_connection_error
from smart_postgres.services.introspection import get_schema
from smart_postgres.services.schema_cache import SchemaCache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/query/schema",
    response_model=SchemaResponse,
    responses={500: {"model": SchemaResponse}},
)
async def schema(
    request: SchemaRequest,
    settings: Settings = Depends(get_app_settings),
    schema_cache: SchemaCache = Depends(get_schema_cache),
):
    """Introspect the database, served from the cache unless ``refresh`` is set."""
    try:
        async with DatabaseService(request.db_config, settings) as db:
            db_schema = await get_schema(db, schema_cache, refresh=request.refresh)
    except Exception as e:
        message = error_message(e, "Failed to fetch database schema")
        logger.error("Error fetching database schema: %s", message)
        body = SchemaResponse(success=False, error=message)
        return JSONResponse(status_code=500, content=body.model_dump(mode="json", by_alias=True))

    return SchemaResponse(db_schema=db_schema)


@router.post(
    "/query/test-connection",
    response_model=ConnectionTestResponse,
    responses={400: {"model": ConnectionTestResponse}},
)
async def test_connection(
    request: ConnectionTestRequest,
    settings: Settings = Depends(get_app_settings),
):
    """Check that the database accepts a connection."""
    db = DatabaseService(request.db_config, settings)
    try:
        await db.test_connection()
    except DatabaseConnectionError as e:
        message = e.message
    except Exception as e:
        message, _ = describe_connection_error(e)
    else:
        return ConnectionTestResponse(success=True)
    finally:
        await db.close()

    logger.warning("Connection test failed for %s: %s", request.db_config.cache_key, message)
    body = ConnectionTestResponse(success=False, error=message)
    return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))

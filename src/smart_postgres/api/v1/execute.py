"""Direct SQL execution endpoints.

Both bypass the natural language pipeline but not the read-only guard.
"""

import logging
import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from smart_postgres.api.dependencies import error_message, error_response, get_app_settings
from smart_postgres.config import Settings
from smart_postgres.core.exceptions import WriteOperationError
from smart_postgres.models.requests import ExecuteRequest, ExecuteSQLRequest
from smart_postgres.models.responses import (
    ErrorResponse,
    ExecuteResponse,
    FieldInfo,
    PaginationInfo,
    RawExecuteResponse,
    Timing,
)
from smart_postgres.services.database import DatabaseService
from smart_postgres.utils.sql import check_read_only

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.post("/query/execute", response_model=ExecuteResponse, responses=_ERROR_RESPONSES)
async def execute(
    request: ExecuteRequest,
    settings: Settings = Depends(get_app_settings),
):
    """Run known SQL and return one page of it."""
    if request.page > settings.max_page:
        raise HTTPException(status_code=422, detail=f"page must be at most {settings.max_page}")

    try:
        check_read_only(request.query, strict=settings.strict_sql_guard)
        async with DatabaseService(request.db_config, settings) as db:
            result = await db.execute_paginated(
                request.query, page=request.page, page_size=settings.execute_page_size
            )
    except WriteOperationError as e:
        return error_response(400, e.message)
    except Exception as e:
        message = error_message(e, "Query execution failed")
        logger.error("Error executing query: %s", message)
        return error_response(500, message)

    return ExecuteResponse(
        data=result.rows,
        fields=FieldInfo.from_fields(result.fields),
        pagination=PaginationInfo.from_pagination(result.pagination),
    )


@router.post("/execute-sql", response_model=RawExecuteResponse, responses=_ERROR_RESPONSES)
async def execute_sql(
    request: ExecuteSQLRequest,
    settings: Settings = Depends(get_app_settings),
):
    """Run SQL unpaged and report how long it took."""
    try:
        check_read_only(request.query, strict=settings.strict_sql_guard)
        async with DatabaseService(request.db_config, settings) as db:
            start_time = datetime.now(UTC)
            started = time.perf_counter()
            result = await db.execute_query(request.query)
            duration = int((time.perf_counter() - started) * 1000)
    except WriteOperationError as e:
        return error_response(400, e.message)
    except Exception as e:
        message = error_message(e, "Query execution failed")
        logger.error("Database query error: %s", message)
        return error_response(500, message)

    return RawExecuteResponse(
        data=result.rows,
        row_count=len(result.rows),
        fields=FieldInfo.from_fields(result.fields),
        timing=Timing(start_time=start_time, duration=duration),
    )

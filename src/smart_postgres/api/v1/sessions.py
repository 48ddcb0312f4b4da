"""Conversation session endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from smart_postgres.api.dependencies import get_session_manager
from smart_postgres.core.exceptions import SessionNotFoundError
from smart_postgres.models.responses import SessionDeletedResponse
from smart_postgres.services.sessions import SessionManager

router = APIRouter()


@router.delete("/sessions/{session_id}", response_model=SessionDeletedResponse)
async def delete_session(
    session_id: str,
    session_manager: SessionManager = Depends(get_session_manager),
):
    """End a session and clear its conversation context."""
    try:
        session_manager.delete(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    return SessionDeletedResponse(session_id=session_id)

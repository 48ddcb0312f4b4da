"""Server-side conversation sessions."""

import logging
import time
from dataclasses import dataclass, field
from threading import Lock

from smart_postgres.config import Settings, get_settings
from smart_postgres.core.exceptions import SessionNotFoundError
from smart_postgres.models.schema import DatabaseSchema
from smart_postgres.services.context_manager import ContextManager

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One conversation and its context."""

    session_id: str
    context: ContextManager
    created_at: float = field(default_factory=time.time)
    last_active: float = field(default_factory=time.time)
    message_count: int = 0


class SessionManager:
    """Holds one ContextManager per session id.

    Sessions are created on first use and dropped after sitting idle for
    ``session_idle_timeout_seconds``.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()

    def _evict_idle(self, now: float) -> None:
        timeout = self._settings.session_idle_timeout_seconds
        expired = [sid for sid, s in self._sessions.items() if now - s.last_active > timeout]
        for session_id in expired:
            self._sessions.pop(session_id).context.clear()
            logger.info("Evicted idle session %s", session_id)

    def get_or_create(self, session_id: str, schema: DatabaseSchema) -> ContextManager:
        """Return the session's context, creating the session if needed.

        An existing session picks up the given schema and keeps its history.
        """
        now = time.time()
        with self._lock:
            self._evict_idle(now)
            session = self._sessions.get(session_id)
            if session is None:
                context = ContextManager(max_queries=self._settings.context_max_queries)
                context.initialize(schema)
                session = Session(session_id=session_id, context=context)
                self._sessions[session_id] = session
                logger.info("Created session %s", session_id)
            else:
                session.context.update_schema(schema)

            session.last_active = now
            session.message_count += 1
            return session.context

    def get(self, session_id: str) -> ContextManager | None:
        """Return the session's context, or None if unknown or expired."""
        with self._lock:
            self._evict_idle(time.time())
            session = self._sessions.get(session_id)
            return session.context if session else None

    def delete(self, session_id: str) -> None:
        """End a session and clear its context.

        Raises:
            SessionNotFoundError: If no such session exists.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.context.clear()
        logger.info("Deleted session %s", session_id)

    def clear(self) -> None:
        """End every session."""
        with self._lock:
            for session in self._sessions.values():
                session.context.clear()
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

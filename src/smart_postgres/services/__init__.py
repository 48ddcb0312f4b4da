"""Services module."""

from smart_postgres.services.context_manager import ContextManager
from smart_postgres.services.database import DatabaseService
from smart_postgres.services.schema_cache import SchemaCache
from smart_postgres.services.sessions import SessionManager

__all__ = ["ContextManager", "DatabaseService", "SchemaCache", "SessionManager"]

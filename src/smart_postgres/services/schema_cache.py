"""Time-bound schema cache keyed by connection identity.

Avoids re-running catalog introspection on every request. Races between
requests are harmless: the last writer wins and stale reads are bounded by
the TTL.
"""

import time
from dataclasses import dataclass
from threading import Lock

from smart_postgres.models.connection import DatabaseConnectionConfig
from smart_postgres.models.schema import DatabaseSchema


@dataclass
class CachedSchema:
    """A cached schema with its expiry."""

    schema: DatabaseSchema
    created_at: float
    expires_at: float


class SchemaCache:
    """In-memory cache of introspected schemas.

    Entries expire after TTL seconds.
    """

    def __init__(self, ttl_seconds: int = 300):
        self._cache: dict[str, CachedSchema] = {}
        self._ttl = ttl_seconds
        self._lock = Lock()

    @staticmethod
    def key_for(config: DatabaseConnectionConfig) -> str:
        return config.cache_key

    def get(self, config: DatabaseConnectionConfig) -> DatabaseSchema | None:
        """Return the cached schema, or None if missing or expired."""
        key = self.key_for(config)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if time.time() > entry.expires_at:
                del self._cache[key]
                return None

            return entry.schema

    def set(self, config: DatabaseConnectionConfig, schema: DatabaseSchema) -> None:
        """Cache a schema for this connection."""
        now = time.time()
        with self._lock:
            self._cache[self.key_for(config)] = CachedSchema(
                schema=schema,
                created_at=now,
                expires_at=now + self._ttl,
            )

    def invalidate(self, config: DatabaseConnectionConfig) -> None:
        """Drop the cached schema for this connection."""
        with self._lock:
            self._cache.pop(self.key_for(config), None)

    def clear(self) -> None:
        """Drop everything."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

"""HTTP API module."""

from smart_postgres.api.v1 import router

__all__ = ["router"]

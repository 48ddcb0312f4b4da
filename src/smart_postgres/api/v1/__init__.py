"""API v1 routes."""

from smart_postgres.api.v1.router import router

__all__ = ["router"]

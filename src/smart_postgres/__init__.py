"""Smart Postgres: natural language questions over PostgreSQL."""

__version__ = "0.1.0"

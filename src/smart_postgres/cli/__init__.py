"""CLI module."""

import asyncio

import typer
import uvicorn
from pydantic import SecretStr
from rich.console import Console
from rich.table import Table

from smart_postgres.config.settings import get_settings
from smart_postgres.core.exceptions import SmartPostgresError, WriteOperationError
from smart_postgres.core.logging import configure_logging
from smart_postgres.models.connection import DatabaseConnectionConfig
from smart_postgres.services.database import DatabaseService
from smart_postgres.services.introspection import introspect_schema
from smart_postgres.utils.sql import check_read_only

app = typer.Typer(help="Smart Postgres CLI")
console = Console()

HostOption = typer.Option("localhost", "-h", "--host", help="Database host")
PortOption = typer.Option(5432, "-p", "--port", help="Database port")
DatabaseOption = typer.Option(..., "-d", "--database", help="Database name")
UserOption = typer.Option(..., "-U", "--user", help="Database user")
PasswordOption = typer.Option(
    "", "--password", envvar="PGPASSWORD", help="Database password", show_default=False
)
SSLOption = typer.Option(False, "--ssl", help="Connect over TLS")


def _db_config(
    host: str, port: int, database: str, user: str, password: str, ssl: bool
) -> DatabaseConnectionConfig:
    return DatabaseConnectionConfig(
        host=host,
        port=port,
        database=database,
        user=user,
        password=SecretStr(password),
        ssl=ssl,
    )


@app.command()
def serve():
    """Run the API server with uvicorn."""
    s = get_settings()
    uvicorn.run(
        "smart_postgres.main:app",
        host=s.api_host,
        port=s.api_port,
        reload=s.api_debug,
    )


@app.command("test-connection")
def test_connection(
    host: str = HostOption,
    port: int = PortOption,
    database: str = DatabaseOption,
    user: str = UserOption,
    password: str = PasswordOption,
    ssl: bool = SSLOption,
):
    """Check that the database accepts a connection."""
    config = _db_config(host, port, database, user, password, ssl)

    async def _test():
        async with DatabaseService(config) as db:
            await db.test_connection()

    try:
        asyncio.run(_test())
    except SmartPostgresError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Connected to {config.cache_key}[/green]")


@app.command()
def schema(
    host: str = HostOption,
    port: int = PortOption,
    database: str = DatabaseOption,
    user: str = UserOption,
    password: str = PasswordOption,
    ssl: bool = SSLOption,
):
    """Introspect the database and list its tables."""
    configure_logging(get_settings().log_level)
    config = _db_config(host, port, database, user, password, ssl)

    async def _introspect():
        async with DatabaseService(config) as db:
            return await introspect_schema(db)

    try:
        db_schema = asyncio.run(_introspect())
    except SmartPostgresError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    if not db_schema.tables:
        console.print("[yellow]No tables found in schema 'public'[/yellow]")
        return

    table = Table(title=f"Tables in {config.database}")
    table.add_column("Table", style="cyan")
    table.add_column("Columns", justify="right")
    table.add_column("Rows", justify="right")
    table.add_column("Foreign keys", justify="right")

    for t in db_schema.tables:
        rows = t.statistics.total_rows if t.statistics else 0
        table.add_row(t.name, str(len(t.columns)), str(rows), str(len(t.foreign_keys)))

    console.print(table)


@app.command("check-sql")
def check_sql(
    sql: str = typer.Argument(..., help="SQL statement to check"),
    strict: bool = typer.Option(False, "--strict", help="Also require a read-only sqlglot parse"),
):
    """Run the read-only guard on a statement without touching a database."""
    try:
        check_read_only(sql, strict=strict or get_settings().strict_sql_guard)
    except WriteOperationError as e:
        keyword = f" ({e.keyword})" if e.keyword else ""
        console.print(f"[red]Rejected{keyword}: {e.message}[/red]")
        raise typer.Exit(1)

    console.print("[green]Allowed: statement is read-only[/green]")

"""Main entry point for the patient service using Typer and Pydantic Settings."""

import typer
import uvicorn
from loguru import logger
from rich.console import Console

from patient_service.database import upgrade_schema
from patient_service.logging import setup_logging
from patient_service.settings import get_settings

app = typer.Typer(name="patient-service", help="Patient service", no_args_is_help=True)
db_app = typer.Typer(help="Database operations", no_args_is_help=True)
app.add_typer(db_app, name="db")

console = Console()


HOST_OPTION = typer.Option(
    None,
    help="Host to bind the server to (overrides PATIENT_SERVICE_HOST)",
    metavar="<server>",
)  # fmt: skip
PORT_OPTION = typer.Option(
    None,
    help="Port to bind the server to (overrides PATIENT_SERVICE_PORT)",
    metavar="<port>",
)  # fmt: skip
RELOAD_OPTION = typer.Option(
    None,
    help="Enable/disable auto-reload (overrides PATIENT_SERVICE_RELOAD)",
)  # fmt: skip
LOG_LEVEL_OPTION = typer.Option(
    None,
    help="Log level (overrides PATIENT_SERVICE_LOG_LEVEL)",
    metavar="<level>",
    case_sensitive=False,
)  # fmt: skip
SQL_LOG_OPTION = typer.Option(
    None,
    help="Enable/disable SQL query logging (overrides PATIENT_SERVICE_SQL_LOG)",
)  # fmt: skip
DATABASE_URL_OPTION = typer.Option(
    None,
    help="Database URL (overrides PATIENT_SERVICE_DATABASE_URL)",
    metavar="<dsn>",
)  # fmt: skip
BILLING_URL_OPTION = typer.Option(
    None,
    help="Billing service base URL (overrides PATIENT_SERVICE_BILLING_URL)",
    metavar="<url>",
)  # fmt: skip


def _update_settings(
    host: str | None = None,
    port: int | None = None,
    log_level: str | None = None,
    reload: bool | None = None,
    sql_log: bool | None = None,
    database_url: str | None = None,
    billing_url: str | None = None,
) -> None:
    """Apply CLI overrides to the cached settings."""
    settings = get_settings()

    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port
    if log_level is not None:
        settings.log_level = log_level.upper()
    if reload is not None:
        settings.reload = reload
    if sql_log is not None:
        settings.sql_log = sql_log
    if database_url is not None:
        settings.database_url = database_url
    if billing_url is not None:
        settings.billing_url = billing_url


@app.command()
def run(
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
    reload: bool = RELOAD_OPTION,
    sql_log: bool = SQL_LOG_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    billing_url: str = BILLING_URL_OPTION,
) -> None:
    """Run the patient service."""
    _update_settings(host, port, log_level, reload, sql_log, database_url, billing_url)
    settings = get_settings()

    setup_logging(settings.log_level)

    logger.info(f"Starting patient service on {settings.host}:{settings.port}")
    logger.info(f"Reload: {settings.reload}")

    # Reload mode needs an import string; settings reach the reloaded process via env only
    if settings.reload:
        uvicorn.run(
            "patient_service.app:app",
            host=settings.host,
            port=settings.port,
            reload=True,
            log_level=settings.log_level.lower(),
        )
    else:
        from patient_service.app import app as fastapi_app

        uvicorn.run(
            fastapi_app,
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level=settings.log_level.lower(),
        )


@db_app.command()
def upgrade(
    database_url: str = DATABASE_URL_OPTION,
    revision: str = typer.Option("head", help="Target revision", metavar="<rev>"),
) -> None:
    """Upgrade the database schema to the latest (or given) revision."""
    _update_settings(database_url=database_url)
    setup_logging(get_settings().log_level)

    console.print(f"[bold]Upgrading database schema to {revision}...[/bold]")
    try:
        upgrade_schema(revision=revision)
    except (OSError, ValueError) as e:
        console.print(f"[red]Upgrade error: {e!s}[/red]")
        raise typer.Exit(1) from None
    console.print("[green]Database schema is up to date[/green]")


if __name__ == "__main__":
    app()

"""Alembic helpers for managing the patients schema."""

import os

import alembic.command
import alembic.config
from loguru import logger

from patient_service.settings import get_settings


def _project_root() -> str:
    # database/ -> patient_service/ -> src/ -> project root
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def build_alembic_config(database_url: str | None = None) -> alembic.config.Config:
    """Build the Alembic configuration.

    ``alembic.ini`` is looked up in the current working directory first, then in
    the project root. ``script_location`` is made absolute so migrations run
    from any directory.

    Raises:
        FileNotFoundError: If no alembic.ini can be found
        ValueError: If no database URL is configured
    """
    root = os.getcwd()
    ini_path = os.path.join(root, "alembic.ini")
    if not os.path.exists(ini_path):
        root = _project_root()
        ini_path = os.path.join(root, "alembic.ini")
    if not os.path.exists(ini_path):
        raise FileNotFoundError("Alembic configuration file not found in cwd or project root")

    url = database_url or get_settings().database_url
    if not url:
        raise ValueError("Database URL missing: provide PATIENT_SERVICE_DATABASE_URL env or --database-url CLI argument")

    logger.trace(f"Loading alembic configuration from: {ini_path}")
    config = alembic.config.Config(ini_path)
    config.set_main_option("script_location", os.path.join(root, "migrations"))
    config.set_main_option("sqlalchemy.url", url)
    return config


def upgrade_schema(database_url: str | None = None, revision: str = "head") -> None:
    """Upgrade the database schema to ``revision``."""
    config = build_alembic_config(database_url)
    logger.info(f"Upgrading database schema to {revision}")
    alembic.command.upgrade(config, revision)
    logger.info("Database schema upgrade complete")

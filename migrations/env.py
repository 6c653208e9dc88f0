import logging
import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from loguru import logger
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

load_dotenv()

LOG_LEVEL = os.getenv("PATIENT_SERVICE_LOG_LEVEL", "INFO").upper()
logger.remove()  # Remove default handler
logger.add(sys.stderr, level=LOG_LEVEL)

SQL_ECHO = os.getenv("PATIENT_SERVICE_SQL_LOG", "false").lower() in ("1", "true", "yes")


# Create an intercept handler for standard logging to route to loguru
class InterceptHandler(logging.Handler):
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# Import all models to ensure they're registered with SQLModel metadata
from patient_service.models import db_model  # noqa: F401, E402
from patient_service.settings import get_settings  # noqa: E402

config = context.config

# The URL set programmatically (patient-service db upgrade) wins over settings
if not config.get_main_option("sqlalchemy.url"):
    database_url = get_settings().database_url
    if not database_url:
        raise ValueError("Database URL missing: provide PATIENT_SERVICE_DATABASE_URL env")
    config.set_main_option("sqlalchemy.url", database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in logging.root.manager.loggerDict:
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False

target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    url = config.get_main_option("sqlalchemy.url")
    logger.info("Running offline migrations")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()
        logger.success("Offline migration completed successfully")


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    engine_config = config.get_section(config.config_ini_section, {})
    engine_config["sqlalchemy.echo"] = str(SQL_ECHO).lower()

    connectable = engine_from_config(
        engine_config,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        logger.info("Database connection established")
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()
            logger.success("Online migration completed successfully")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

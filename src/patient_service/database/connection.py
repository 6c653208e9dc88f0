"""Database configuration and connection setup.

The SQLModel engine is created lazily, after application settings have been
loaded and possibly overridden by CLI flags. This prevents premature failure
on import when `PATIENT_SERVICE_DATABASE_URL` is not yet set or will be
provided via command line.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine, text
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from patient_service.exceptions import StoreError
from patient_service.settings import get_settings

_engine = None  # type: ignore[var-annotated]


def _build_engine():  # type: ignore[return-value]
    """Create and return a new engine from current settings.

    Raises:
        ValueError: if database URL not configured.
    """
    settings = get_settings()
    database_url = settings.database_url
    if not database_url:
        raise ValueError("Database URL missing: provide PATIENT_SERVICE_DATABASE_URL env or --database-url CLI argument")

    if database_url.startswith("sqlite"):
        # Request handlers run on a threadpool, sessions may cross threads
        engine_local = create_engine(database_url, echo=settings.sql_log, connect_args={"check_same_thread": False})
    else:
        engine_local = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            echo=settings.sql_log,
            connect_args={"connect_timeout": 10},
        )
    logger.info("SQL echo is {}", "enabled" if settings.sql_log else "disabled")
    return engine_local


def get_engine():  # type: ignore[return-value]
    """Return a singleton engine instance, creating it lazily."""
    global _engine
    if _engine is None:
        _engine = _build_engine()
    return _engine


def dispose_db() -> None:
    """Dispose of the database engine if it was created."""
    global _engine
    if _engine is not None:
        logger.info("Closing database connections")
        _engine.dispose()
        _engine = None


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
    retry=retry_if_exception_type(Exception),
    before_sleep=before_sleep_log(logger, "DEBUG"),
)
def _create_session() -> Session:
    """Create a database session with retry logic.

    Connection failures dispose the engine so the next attempt recreates it.

    Returns:
        Session: A new database session

    Raises:
        Exception: If all retry attempts fail
    """
    global _engine
    try:
        session = Session(get_engine())
        session.execute(text("SELECT 1"))
        return session
    except Exception as e:
        if _engine is not None:
            logger.warning("Database connection failed, disposing engine for retry...")
            _engine.dispose()
            _engine = None
        logger.error("Failed to create database session: {}", e)
        raise


@contextmanager
def borrow_db_session() -> Generator[Session]:
    """Public context manager for ad-hoc database usage.

    Creates a database session with retry logic and yields it to the caller.
    A store that stays unreachable after the retries raises ``StoreError``.
    For FastAPI route handlers, use get_db_session() as a dependency instead.

    Example:
        from patient_service.database import borrow_db_session
        with borrow_db_session() as session:
            session.exec(text("SELECT 1"))
    """
    try:
        session = _create_session()
    except SQLAlchemyError as e:
        raise StoreError("Record store unavailable: could not open a session") from e
    session_id = id(session)

    try:
        yield session
    except Exception as e:  # noqa: BLE001
        logger.error("Error during database session {}: {}", session_id, e)
        raise
    finally:
        session.close()
        logger.trace("Database session {} closed and resources released", session_id)


def get_db_session() -> Generator[Session]:
    """FastAPI dependency yielding a database session.

    Usage in route:
        def endpoint(session: Session = Depends(get_db_session)): ...
    """
    with borrow_db_session() as session:
        yield session


def is_healthy(session: Session) -> dict[str, Any]:
    """Check if the database connection is healthy.

    Args:
        session: The database session to use for the health check.

    Returns:
        A dictionary containing the database health status and connection info.
    """
    try:
        session.exec(text("SELECT 1")).one()
        return {"status": "healthy", "connection": "active"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e), "connection": "failed"}

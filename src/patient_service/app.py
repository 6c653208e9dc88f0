"""Main FastAPI application module."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from patient_service.api.api_router import router as api_router
from patient_service.api.health_check import router as health_router
from patient_service.database import borrow_db_session, dispose_db, is_healthy
from patient_service.event_bus import get_event_bus
from patient_service.events import register_event_handlers, unregister_event_handlers
from patient_service.exception_handlers import register_exception_handlers
from patient_service.logging import setup_logging, setup_sqlalchemy_logging
from patient_service.services.di import register_all_services, release_services
from patient_service.services.registry import get_service_registry
from patient_service.settings import Settings, get_settings


def _log_server_endpoints_summary(settings: Settings) -> None:
    """Log the server URL and available endpoints."""
    server_url = f"http://{settings.host}:{settings.port}"
    logger.info(f"Server running at: {server_url}")

    endpoints = [
        ("Patients", "/patients"),
        ("Patient event stats", "/analytics/patient-events"),
        ("Health Check", "/health-check"),
        ("Ping", "/ping"),
        ("API Docs", "/docs"),
    ]
    logger.info("Available endpoints:")
    for name, path in endpoints:
        logger.info(f"   {name}: {server_url}{path}")


def _check_record_store() -> None:
    """Verify the record store is reachable; exit otherwise.

    Raises:
        SystemExit: If no session can be opened or the store is unhealthy
    """
    try:
        with borrow_db_session() as session:
            health = is_healthy(session)
    except Exception as e:
        logger.error(f"Record store unavailable at startup: {e}")
        raise SystemExit(1) from None

    if health["status"] != "healthy":
        logger.error(f"Record store unhealthy at startup: {health}")
        raise SystemExit(1)
    logger.info("Record store connection is healthy")


@asynccontextmanager
async def app_lifespan(_app: FastAPI):
    """Handle startup and shutdown events for the application."""
    settings = get_settings()
    _app.state.settings = settings  # type: ignore[attr-defined]

    setup_logging(log_level=settings.log_level)
    setup_sqlalchemy_logging()

    logger.info("Registering services in the service registry")
    registry = get_service_registry()
    register_all_services(registry, settings)
    register_event_handlers(settings.event_topic)

    _check_record_store()
    _log_server_endpoints_summary(settings)

    yield

    logger.info("Patient service shutting down")

    unregister_event_handlers(settings.event_topic)
    get_event_bus().shutdown()
    release_services(registry)
    dispose_db()


app = FastAPI(
    lifespan=app_lifespan,
    title="Patient service",
    description="Patient records with event publication and billing account provisioning",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

register_exception_handlers(app)

app.include_router(health_router, prefix="")
app.include_router(api_router, prefix="")

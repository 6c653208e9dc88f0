"""System API endpoints: health check and ping."""

from typing import Any

from fastapi import APIRouter
from loguru import logger
from pydantic import BaseModel

from patient_service.database import borrow_db_session, is_healthy
from patient_service.services.billing_gateway import BillingGateway
from patient_service.services.registry import get_service_registry

router = APIRouter(tags=["System"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    database: dict[str, Any]
    billing_enabled: bool


@router.get("/health-check", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Report record store connectivity.

    Only the record store decides the status; the event publisher and billing
    gateway are post-commit dependencies whose outage never fails a request.
    """
    logger.debug("Health check requested")

    try:
        with borrow_db_session() as session:
            database = is_healthy(session)
    except Exception as e:
        logger.error(f"Health check could not open a database session: {e}")
        database = {"status": "unhealthy", "error": str(e), "connection": "failed"}

    return HealthResponse(
        status="ok" if database["status"] == "healthy" else "error",
        database=database,
        billing_enabled=get_service_registry().is_registered(BillingGateway),
    )


class PingResponse(BaseModel):
    ping: str = "pong"


@router.get("/ping", response_model=PingResponse)
async def ping() -> PingResponse:
    """Liveness check that touches no dependency."""
    return PingResponse()

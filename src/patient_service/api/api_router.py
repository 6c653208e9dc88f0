"""API router initialization."""

from fastapi import APIRouter
from loguru import logger

from patient_service.api.analytics import router as analytics_router
from patient_service.api.patients import router as patients_router

# Create main API router
router = APIRouter()

# Mount API endpoints
router.include_router(patients_router, tags=["patients"])
router.include_router(analytics_router, tags=["analytics"])

logger.debug("API router initialized (patients, analytics routers mounted)")

"""API dependencies for FastAPI endpoints."""

from fastapi import Depends
from sqlmodel import Session

from patient_service.database import get_db_session
from patient_service.events.publisher import EventPublisher
from patient_service.repositories.patient_repository import PatientRepository
from patient_service.services.billing_gateway import BillingGateway
from patient_service.services.patient_service import PatientLifecycleService
from patient_service.services.registry import get_service_registry
from patient_service.settings import Settings, get_settings


def get_patient_lifecycle_service(
    session: Session = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> PatientLifecycleService:
    """Compose a lifecycle service for the current request.

    The repository is bound to the request's own session; the publisher and
    billing gateway are the process-wide instances from the service registry.
    """
    registry = get_service_registry()
    return PatientLifecycleService(
        repository=PatientRepository(session),
        publisher=registry.get(EventPublisher),
        billing_gateway=registry.get_optional(BillingGateway),
        topic=settings.event_topic,
    )

"""
Patient API - CRUD operations for patient management.

All endpoints delegate to PatientLifecycleService. Errors raised by the
service are rendered by the handlers in ``patient_service.exception_handlers``.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from patient_service.api.dependencies import get_patient_lifecycle_service
from patient_service.models.api_model import PatientCreateInput, PatientResponse, PatientUpdateInput
from patient_service.services.patient_service import PatientLifecycleService

router = APIRouter()


@router.get("/patients", response_model=list[PatientResponse])
def get_patients(
    patient_service: PatientLifecycleService = Depends(get_patient_lifecycle_service),
) -> list[PatientResponse]:
    """Get all patients."""
    return patient_service.list_patients()


@router.get("/patients/{patient_id}", response_model=PatientResponse)
def get_patient(
    patient_id: UUID,
    patient_service: PatientLifecycleService = Depends(get_patient_lifecycle_service),
) -> PatientResponse:
    """Get a patient by ID.

    Raises:
        ResourceNotFoundError: If patient not found (404)
    """
    return patient_service.get_patient(patient_id)


@router.post("/patients", response_model=PatientResponse, status_code=status.HTTP_200_OK)
def create_patient(
    patient: PatientCreateInput,
    patient_service: PatientLifecycleService = Depends(get_patient_lifecycle_service),
) -> PatientResponse:
    """Create a new patient.

    The response is returned once the record is committed; event publication
    and billing provisioning failures do not change it.

    Raises:
        InputValidationError: Invalid fields (400)
        ConflictError: Email already registered (409)
    """
    return patient_service.create_patient(patient)


@router.post("/patients/{patient_id}", response_model=PatientResponse)
def update_patient(
    patient_id: UUID,
    patient: PatientUpdateInput,
    patient_service: PatientLifecycleService = Depends(get_patient_lifecycle_service),
) -> PatientResponse:
    """Update a patient's name, email and address.

    Raises:
        InputValidationError: Invalid fields (400)
        ResourceNotFoundError: Patient not found (404)
        ConflictError: Email registered to another patient (409)
    """
    return patient_service.update_patient(patient_id, patient)


@router.delete("/patients/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: UUID,
    patient_service: PatientLifecycleService = Depends(get_patient_lifecycle_service),
) -> None:
    """Delete a patient by ID.

    Raises:
        ResourceNotFoundError: Patient not found (404)
    """
    patient_service.delete_patient(patient_id)

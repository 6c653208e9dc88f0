"""Patient lifecycle service.

Coordinates a patient mutation across the record store, the event publisher
and the billing gateway using commit-then-notify ordering:

1. validate input and check email uniqueness (nothing written yet)
2. commit the primary write
3. publish the lifecycle event, then (on create) provision a billing account

Once step 2 commits, the operation has succeeded. Failures in step 3 are
logged as ``DependencyError`` and never roll back the write or change the
response. A record can therefore exist without its event having been
delivered or its billing account having been created.
"""

from datetime import date
from uuid import UUID

from loguru import logger

from patient_service.events.publisher import EventPublisher
from patient_service.events.types import PatientEvent, PatientEventType
from patient_service.exceptions import ConflictError, DependencyError, InputValidationError, ResourceNotFoundError
from patient_service.models.api_model import PatientCreateInput, PatientResponse, PatientUpdateInput
from patient_service.models.db_model import Patient as PatientModel
from patient_service.repositories.patient_repository import PatientRepository
from patient_service.services.billing_gateway import BillingGateway
from patient_service.services.validation import parse_iso_date, validate_patient_input

RESOURCE_TYPE = "Patient"


class PatientLifecycleService:
    """Service for patient lifecycle operations."""

    def __init__(
        self,
        repository: PatientRepository,
        publisher: EventPublisher,
        billing_gateway: BillingGateway | None,
        topic: str = "patient",
    ):
        """Initialize the lifecycle service with its collaborators.

        Args:
            repository: Record store for patient rows
            publisher: Event publisher lifecycle events go to
            billing_gateway: Billing gateway, or None when billing provisioning is disabled
            topic: Topic patient events are published to
        """
        self.repository = repository
        self.publisher = publisher
        self.billing_gateway = billing_gateway
        self.topic = topic

    def list_patients(self) -> list[PatientResponse]:
        logger.debug("Service: list_patients")
        return [PatientResponse.model_validate(patient) for patient in self.repository.find_all()]

    def get_patient(self, id_: UUID) -> PatientResponse:
        """Get a patient by ID.

        Raises:
            ResourceNotFoundError: If no patient has this ID
        """
        logger.debug(f"Service: get_patient with id={id_}")
        return PatientResponse.model_validate(self._load(id_))

    def create_patient(self, payload: PatientCreateInput) -> PatientResponse:
        """Create a new patient.

        Args:
            payload: Patient fields; ``registeredDate`` defaults to today when omitted

        Returns:
            The persisted patient, whether or not the event and billing steps succeed

        Raises:
            InputValidationError: If the payload is malformed
            ConflictError: If the email already belongs to a patient
            StoreError: If the record store fails
        """
        today = date.today()
        violations = validate_patient_input(payload, creating=True, today=today)
        if violations:
            raise InputValidationError(violations)

        email = payload.email.strip()
        if self.repository.find_by_email(email) is not None:
            logger.debug(f"Service: create_patient - email already registered: {email}")
            raise ConflictError(email)

        new_patient = PatientModel(
            name=payload.name.strip(),
            email=email,
            address=payload.address.strip(),
            date_of_birth=parse_iso_date(payload.date_of_birth),
            registered_date=parse_iso_date(payload.registered_date) or today,
        )
        created = PatientResponse.model_validate(self.repository.insert(new_patient))
        logger.info(f"Service: create_patient - created patient {created.id}")

        self._publish(PatientEventType.CREATED, created)
        self._provision_billing_account(created)
        return created

    def update_patient(self, id_: UUID, payload: PatientUpdateInput) -> PatientResponse:
        """Update a patient's name, email and address.

        Raises:
            InputValidationError: If the payload is malformed
            ResourceNotFoundError: If no patient has this ID
            ConflictError: If the email belongs to a different patient
            StoreError: If the record store fails
        """
        logger.debug(f"Service: update_patient with id={id_}")
        violations = validate_patient_input(payload, creating=False)
        if violations:
            raise InputValidationError(violations)

        existing = self._load(id_)

        email = payload.email.strip()
        owner = self.repository.find_by_email(email)
        if owner is not None and owner.id != existing.id:
            logger.debug(f"Service: update_patient - email {email} belongs to patient {owner.id}")
            raise ConflictError(email)

        changes = {"name": payload.name.strip(), "email": email, "address": payload.address.strip()}
        updated = PatientResponse.model_validate(self.repository.update(existing, changes))
        logger.info(f"Service: update_patient - updated patient {updated.id}")

        self._publish(PatientEventType.UPDATED, updated)
        return updated

    def delete_patient(self, id_: UUID) -> None:
        """Delete a patient by ID.

        Raises:
            ResourceNotFoundError: If no patient has this ID
            StoreError: If the record store fails
        """
        logger.debug(f"Service: delete_patient with id={id_}")
        snapshot = PatientResponse.model_validate(self._load(id_))

        if not self.repository.delete(id_):
            # Removed by a concurrent request between the load and the delete
            raise ResourceNotFoundError(RESOURCE_TYPE, id_)
        logger.info(f"Service: delete_patient - deleted patient {id_}")

        self._publish(PatientEventType.DELETED, snapshot)

    def _load(self, id_: UUID) -> PatientModel:
        patient = self.repository.find_by_id(id_)
        if patient is None:
            logger.debug(f"Service: patient not found: {id_}")
            raise ResourceNotFoundError(RESOURCE_TYPE, id_)
        return patient

    def _publish(self, event_type: PatientEventType, patient: PatientResponse) -> None:
        """Publish a lifecycle event. Runs after commit; failures are logged only."""
        event = PatientEvent(event_type=event_type, patient_id=patient.id, name=patient.name, email=patient.email)
        try:
            self.publisher.publish(self.topic, event)
        except Exception as e:
            failure = e if isinstance(e, DependencyError) else DependencyError("event publisher", str(e))
            logger.warning(f"Service: {event_type} event for patient {patient.id} was not published: {failure}")

    def _provision_billing_account(self, patient: PatientResponse) -> None:
        """Provision a billing account. Runs after commit; failures are logged only."""
        if self.billing_gateway is None:
            logger.info(f"Service: billing disabled, no account provisioned for patient {patient.id}")
            return

        try:
            response = self.billing_gateway.create_account(patient.id, patient.name, patient.email)
        except Exception as e:
            failure = e if isinstance(e, DependencyError) else DependencyError("billing", str(e))
            logger.warning(f"Service: billing account for patient {patient.id} not provisioned: {failure}")
            return

        if not response.succeeded:
            logger.warning(f"Service: billing rejected account for patient {patient.id}: {response.status} {response.message}")
            return
        logger.info(f"Service: billing account provisioned for patient {patient.id}: {response.status}")

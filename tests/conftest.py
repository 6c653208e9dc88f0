"""Shared fixtures: in-memory record store and recording collaborators."""

from collections.abc import Generator
from uuid import UUID

import pytest
from pydantic import BaseModel
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from patient_service.exceptions import DependencyError
from patient_service.models import db_model  # noqa: F401
from patient_service.repositories.patient_repository import PatientRepository
from patient_service.services.billing_gateway import BillingAccountResponse
from patient_service.services.patient_service import PatientLifecycleService


class RecordingPublisher:
    """Publisher that keeps every (topic, event) it is asked to publish."""

    def __init__(self, error: Exception | None = None):
        self.published: list[tuple[str, BaseModel]] = []
        self.error = error

    def publish(self, topic: str, event: BaseModel) -> None:
        self.published.append((topic, event))
        if self.error is not None:
            raise self.error

    @property
    def events(self) -> list[BaseModel]:
        return [event for _, event in self.published]


class RecordingBillingGateway:
    """Billing gateway that records calls and answers with a fixed outcome."""

    def __init__(self, response: BillingAccountResponse | None = None, error: Exception | None = None):
        self.calls: list[tuple[UUID, str, str]] = []
        self.response = response or BillingAccountResponse(status="ACTIVE", message="Account created")
        self.error = error

    def create_account(self, patient_id: UUID, name: str, email: str) -> BillingAccountResponse:
        self.calls.append((patient_id, name, email))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def billing() -> RecordingBillingGateway:
    return RecordingBillingGateway()


@pytest.fixture
def unreachable_billing() -> RecordingBillingGateway:
    return RecordingBillingGateway(error=DependencyError("billing", "billing service unreachable: connection refused"))


@pytest.fixture
def lifecycle(session, publisher, billing) -> PatientLifecycleService:
    return PatientLifecycleService(PatientRepository(session), publisher, billing, topic="patient")


@pytest.fixture
def make_publisher() -> type[RecordingPublisher]:
    return RecordingPublisher


@pytest.fixture
def make_billing() -> type[RecordingBillingGateway]:
    return RecordingBillingGateway

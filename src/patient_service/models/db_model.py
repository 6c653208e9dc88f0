from datetime import UTC, date, datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from patient_service.models.base_model import PatientBase


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Patient(PatientBase, table=True):
    """Patient model."""

    __tablename__ = "patients"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=255, unique=True, index=True)
    address: str
    date_of_birth: date
    registered_date: date
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow, sa_column_kwargs={"onupdate": _utcnow})

from datetime import date
from uuid import UUID

from sqlmodel import SQLModel


class PatientBase(SQLModel):
    """Base model for a patient."""

    id: UUID | None = None
    name: str | None = None
    email: str | None = None
    address: str | None = None
    date_of_birth: date | None = None
    registered_date: date | None = None

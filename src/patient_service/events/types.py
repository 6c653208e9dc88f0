"""Event type definitions for the patient service.

Events are immutable snapshots of a patient record taken at mutation time.
"""

from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PatientEventType(StrEnum):
    """Lifecycle transitions that produce a patient event."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class PatientEvent(BaseModel):
    """Event published after a patient mutation has been committed."""

    model_config = ConfigDict(frozen=True)

    event_type: PatientEventType
    patient_id: UUID
    name: str
    email: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

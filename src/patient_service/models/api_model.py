"""API models for the patient service.

Input models are deliberately permissive: every field is an optional string so
that ``validate_patient_input`` can report all field violations at once with
the service's own rules instead of failing on the first schema error.
"""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for wire models using camelCase names while accepting snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# Patient update input (dateOfBirth and registeredDate are not updatable)
class PatientUpdateInput(CamelModel):
    name: str | None = None
    email: str | None = None
    address: str | None = None


# Patient create input
class PatientCreateInput(PatientUpdateInput):
    date_of_birth: str | None = None
    registered_date: str | None = None


class PatientResponse(CamelModel):
    """Patient record as returned to API clients."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    address: str
    date_of_birth: date
    registered_date: date


class FieldViolation(BaseModel):
    """A single field-level validation failure."""

    field: str
    message: str

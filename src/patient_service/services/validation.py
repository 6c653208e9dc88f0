"""Field validation for patient input.

``validate_patient_input`` collects every violation instead of stopping at the
first one, so a client can fix a request in a single round trip. Field names
in violations use the camelCase wire names.
"""

from datetime import date

from email_validator import EmailNotValidError, validate_email

from patient_service.models.api_model import FieldViolation, PatientCreateInput, PatientUpdateInput

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 254


def parse_iso_date(value: str | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` string, returning None when it is not a valid date."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _is_valid_email(value: str) -> bool:
    # Syntax only; deliverability needs DNS
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_patient_input(payload: PatientUpdateInput, creating: bool, today: date | None = None) -> list[FieldViolation]:
    """Validate a create or update payload.

    Args:
        payload: Request payload; must be a ``PatientCreateInput`` when ``creating`` is True
        creating: Whether creation-only fields are validated
        today: Reference date for the date-of-birth check (defaults to ``date.today()``)

    Returns:
        All field violations found, empty when the payload is valid
    """
    today = today or date.today()
    violations: list[FieldViolation] = []

    if _is_blank(payload.name):
        violations.append(FieldViolation(field="name", message="Name is required"))
    elif len(payload.name.strip()) > NAME_MAX_LENGTH:
        violations.append(FieldViolation(field="name", message=f"Name cannot exceed {NAME_MAX_LENGTH} characters"))

    if _is_blank(payload.email):
        violations.append(FieldViolation(field="email", message="Email is required"))
    elif len(payload.email.strip()) > EMAIL_MAX_LENGTH:
        violations.append(FieldViolation(field="email", message=f"Email cannot exceed {EMAIL_MAX_LENGTH} characters"))
    elif not _is_valid_email(payload.email.strip()):
        violations.append(FieldViolation(field="email", message="Email should be valid"))

    if _is_blank(payload.address):
        violations.append(FieldViolation(field="address", message="Address is required"))

    if not creating:
        return violations

    if not isinstance(payload, PatientCreateInput):
        raise TypeError(f"Creation requires PatientCreateInput, got {type(payload).__name__}")

    if _is_blank(payload.date_of_birth):
        violations.append(FieldViolation(field="dateOfBirth", message="Date of birth is required"))
    else:
        date_of_birth = parse_iso_date(payload.date_of_birth)
        if date_of_birth is None:
            violations.append(FieldViolation(field="dateOfBirth", message="Date of birth must be a date in YYYY-MM-DD format"))
        elif date_of_birth >= today:
            violations.append(FieldViolation(field="dateOfBirth", message="Date of birth must be in the past"))

    if not _is_blank(payload.registered_date) and parse_iso_date(payload.registered_date) is None:
        violations.append(FieldViolation(field="registeredDate", message="Registered date must be a date in YYYY-MM-DD format"))

    return violations

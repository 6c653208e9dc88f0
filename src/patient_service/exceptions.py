"""Exceptions raised by the patient lifecycle.

Every error carries an ``error_type`` identifier and the ``http_status`` the
REST layer answers with. ``DependencyError`` is the exception: it describes a
failed post-commit side effect and never reaches the client.
"""

from typing import Any
from uuid import UUID


class PatientServiceError(Exception):
    """Base class for all patient service errors."""

    error_type = "error"
    http_status = 500

    def __init__(self, message: str, detail: Any = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class InputValidationError(PatientServiceError):
    """Raised when client input fails validation. Detected before any write."""

    error_type = "validation_error"
    http_status = 400

    def __init__(self, violations: list[Any]):
        self.violations = violations
        fields = ", ".join(sorted({v.field for v in violations}))
        super().__init__(f"Invalid input: {fields}", detail=[v.model_dump() for v in violations])


class ConflictError(PatientServiceError):
    """Raised when a write would break the unique email constraint."""

    error_type = "conflict"
    http_status = 409

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"A patient with email {email} already exists")


class ResourceNotFoundError(PatientServiceError):
    """Raised when a resource doesn't exist.

    Generic exception for any resource that cannot be found by its identifier.
    """

    error_type = "not_found"
    http_status = 404

    def __init__(self, resource_type: str, identifier: str | UUID | int):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found: {identifier}")


class StoreError(PatientServiceError):
    """Raised when the record store fails. Aborts the request."""

    error_type = "store_unavailable"
    http_status = 503


class DependencyError(PatientServiceError):
    """Raised when the event publisher or billing gateway fails or times out."""

    error_type = "dependency_failure"
    http_status = 502

    def __init__(self, dependency: str, message: str):
        self.dependency = dependency
        super().__init__(f"{dependency}: {message}")

"""Billing gateway client.

Provisions a billing account for a newly created patient through the billing
service's request/response endpoint. Every transport-level failure is reported
as a ``DependencyError``; the caller decides whether it is fatal.
"""

from typing import Protocol
from uuid import UUID

import httpx
from loguru import logger
from pydantic import BaseModel

from patient_service.exceptions import DependencyError

BILLING_ACCOUNTS_PATH = "/billing/accounts"
SUCCESS_STATUSES = frozenset({"ACTIVE", "SUCCESS"})


class BillingAccountRequest(BaseModel):
    patient_id: UUID
    name: str
    email: str


class BillingAccountResponse(BaseModel):
    status: str
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status.upper() in SUCCESS_STATUSES


class BillingGateway(Protocol):
    """Synchronous billing account provisioning."""

    def create_account(self, patient_id: UUID, name: str, email: str) -> BillingAccountResponse: ...


class HttpBillingGateway:
    """Billing gateway speaking JSON over HTTP with a bounded timeout."""

    def __init__(self, base_url: str, timeout: float, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url
        self.timeout = timeout
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def create_account(self, patient_id: UUID, name: str, email: str) -> BillingAccountResponse:
        """Request a billing account for a patient.

        Args:
            patient_id: Identifier of the persisted patient
            name: Patient name
            email: Patient email

        Returns:
            The billing service's status and message

        Raises:
            DependencyError: On timeout, connection failure, error status or malformed reply
        """
        request = BillingAccountRequest(patient_id=patient_id, name=name, email=email)
        logger.debug(f"Billing: create_account for patient {patient_id} at {self.base_url}")

        try:
            response = self._client.post(BILLING_ACCOUNTS_PATH, json=request.model_dump(mode="json"))
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise DependencyError("billing", f"request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise DependencyError("billing", f"billing service answered HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise DependencyError("billing", f"billing service unreachable: {e}") from e

        try:
            result = BillingAccountResponse.model_validate(response.json())
        except ValueError as e:  # JSON decode and pydantic validation errors
            raise DependencyError("billing", f"malformed billing response: {e}") from e

        logger.debug(f"Billing: create_account for patient {patient_id} returned {result.status}")
        return result

    def close(self) -> None:
        self._client.close()

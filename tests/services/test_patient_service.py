"""Tests for the patient lifecycle service against an in-memory record store."""

from datetime import date
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from patient_service.events.types import PatientEventType
from patient_service.exceptions import ConflictError, InputValidationError, ResourceNotFoundError, StoreError
from patient_service.models.api_model import PatientCreateInput, PatientUpdateInput
from patient_service.repositories.patient_repository import PatientRepository
from patient_service.services.billing_gateway import BillingAccountResponse
from patient_service.services.patient_service import PatientLifecycleService


def john_doe(**overrides) -> PatientCreateInput:
    fields = {
        "name": "John Doe",
        "email": "john@example.com",
        "address": "1 Main St",
        "dateOfBirth": "1990-05-15",
        "registeredDate": "2024-01-10",
    }
    fields.update(overrides)
    return PatientCreateInput.model_validate(fields)


def lose_store_after_commit(session, monkeypatch):
    """Make every statement after the next commit fail as if the connection dropped."""
    real_commit = session.commit

    def unavailable(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("server closed the connection unexpectedly"))

    def commit_then_disconnect():
        real_commit()
        monkeypatch.setattr(session, "execute", unavailable)
        monkeypatch.setattr(session, "refresh", unavailable)

    monkeypatch.setattr(session, "commit", commit_then_disconnect)


class TestCreatePatient:
    def test_create_returns_persisted_patient(self, lifecycle):
        created = lifecycle.create_patient(john_doe())

        assert created.name == "John Doe"
        assert created.email == "john@example.com"
        assert created.address == "1 Main St"
        assert created.date_of_birth == date(1990, 5, 15)
        assert created.registered_date == date(2024, 1, 10)
        assert lifecycle.get_patient(created.id) == created

    def test_each_patient_gets_a_new_id(self, lifecycle):
        first = lifecycle.create_patient(john_doe())
        second = lifecycle.create_patient(john_doe(email="jane@example.com", name="Jane Doe"))

        assert first.id != second.id

    def test_registered_date_defaults_to_today(self, lifecycle):
        created = lifecycle.create_patient(john_doe(registeredDate=None))

        assert created.registered_date == date.today()

    def test_values_are_trimmed(self, lifecycle):
        created = lifecycle.create_patient(john_doe(name="  John Doe ", email=" john@example.com "))

        assert created.name == "John Doe"
        assert created.email == "john@example.com"

    def test_publishes_exactly_one_created_event(self, lifecycle, publisher):
        created = lifecycle.create_patient(john_doe())

        assert len(publisher.published) == 1
        topic, event = publisher.published[0]
        assert topic == "patient"
        assert event.event_type == PatientEventType.CREATED
        assert event.patient_id == created.id
        assert event.name == "John Doe"
        assert event.email == "john@example.com"

    def test_provisions_billing_account(self, lifecycle, billing):
        created = lifecycle.create_patient(john_doe())

        assert billing.calls == [(created.id, "John Doe", "john@example.com")]

    def test_duplicate_email_conflicts(self, lifecycle, publisher, billing):
        lifecycle.create_patient(john_doe())

        with pytest.raises(ConflictError) as exc_info:
            lifecycle.create_patient(john_doe(name="Johnny"))

        assert exc_info.value.email == "john@example.com"
        assert len(lifecycle.list_patients()) == 1
        assert len(publisher.published) == 1
        assert len(billing.calls) == 1

    def test_invalid_input_writes_nothing(self, lifecycle, publisher, billing):
        with pytest.raises(InputValidationError) as exc_info:
            lifecycle.create_patient(john_doe(name="", email="not-an-email"))

        assert {v.field for v in exc_info.value.violations} == {"name", "email"}
        assert lifecycle.list_patients() == []
        assert publisher.published == []
        assert billing.calls == []

    def test_future_date_of_birth_rejected(self, lifecycle):
        with pytest.raises(InputValidationError) as exc_info:
            lifecycle.create_patient(john_doe(dateOfBirth="2999-01-01"))

        assert [v.field for v in exc_info.value.violations] == ["dateOfBirth"]

    def test_unreachable_billing_does_not_fail_create(self, session, publisher, unreachable_billing):
        lifecycle = PatientLifecycleService(PatientRepository(session), publisher, unreachable_billing)

        created = lifecycle.create_patient(john_doe())

        assert lifecycle.get_patient(created.id) == created
        assert len(unreachable_billing.calls) == 1
        assert [e.event_type for e in publisher.events] == [PatientEventType.CREATED]

    def test_unexpected_billing_error_does_not_fail_create(self, session, publisher, make_billing):
        billing = make_billing(error=RuntimeError("boom"))
        lifecycle = PatientLifecycleService(PatientRepository(session), publisher, billing)

        created = lifecycle.create_patient(john_doe())

        assert lifecycle.get_patient(created.id) == created

    def test_rejected_billing_account_does_not_fail_create(self, session, publisher, make_billing):
        billing = make_billing(response=BillingAccountResponse(status="REJECTED", message="duplicate"))
        lifecycle = PatientLifecycleService(PatientRepository(session), publisher, billing)

        created = lifecycle.create_patient(john_doe())

        assert lifecycle.get_patient(created.id) == created

    def test_billing_disabled(self, session, publisher):
        lifecycle = PatientLifecycleService(PatientRepository(session), publisher, None)

        created = lifecycle.create_patient(john_doe())

        assert lifecycle.get_patient(created.id) == created

    def test_publisher_failure_does_not_fail_create(self, session, billing, make_publisher):
        publisher = make_publisher(error=ConnectionError("broker down"))
        lifecycle = PatientLifecycleService(PatientRepository(session), publisher, billing)

        created = lifecycle.create_patient(john_doe())

        assert lifecycle.get_patient(created.id) == created
        assert len(publisher.published) == 1
        # Billing still runs after a failed publication
        assert len(billing.calls) == 1

    def test_unique_constraint_race_is_a_conflict(self, lifecycle, publisher, billing, monkeypatch):
        """A concurrent insert can slip past the email lookup; the unique index still rejects it."""
        lifecycle.create_patient(john_doe())
        publisher.published.clear()
        billing.calls.clear()
        monkeypatch.setattr(lifecycle.repository, "find_by_email", lambda email: None)

        with pytest.raises(ConflictError):
            lifecycle.create_patient(john_doe(name="Racing John"))

        assert publisher.published == []
        assert billing.calls == []
        assert [p.name for p in lifecycle.list_patients()] == ["John Doe"]

    def test_store_lost_after_commit_still_succeeds(self, lifecycle, publisher, billing, session, monkeypatch):
        """Once the insert commits, no further store read can turn the create into a failure."""
        lose_store_after_commit(session, monkeypatch)

        created = lifecycle.create_patient(john_doe())

        assert created.name == "John Doe"
        assert [e.event_type for e in publisher.events] == [PatientEventType.CREATED]
        assert len(billing.calls) == 1

        monkeypatch.undo()
        assert lifecycle.get_patient(created.id) == created

    def test_store_failure_aborts_before_side_effects(self, publisher, billing):
        session = MagicMock()
        session.exec.return_value.first.return_value = None
        session.commit.side_effect = OperationalError("INSERT INTO patients", {}, Exception("disk I/O error"))
        lifecycle = PatientLifecycleService(PatientRepository(session), publisher, billing)

        with pytest.raises(StoreError):
            lifecycle.create_patient(john_doe())

        session.rollback.assert_called_once()
        assert publisher.published == []
        assert billing.calls == []


class TestUpdatePatient:
    def test_update_changes_fields(self, lifecycle, publisher):
        created = lifecycle.create_patient(john_doe())

        updated = lifecycle.update_patient(
            created.id, PatientUpdateInput(name="John Q. Doe", email="jqd@example.com", address="2 Side St")
        )

        assert updated.id == created.id
        assert updated.name == "John Q. Doe"
        assert updated.email == "jqd@example.com"
        assert updated.address == "2 Side St"
        assert updated.date_of_birth == created.date_of_birth
        assert updated.registered_date == created.registered_date
        assert lifecycle.get_patient(created.id) == updated
        assert [e.event_type for e in publisher.events] == [PatientEventType.CREATED, PatientEventType.UPDATED]
        assert publisher.events[-1].email == "jqd@example.com"

    def test_update_keeping_own_email(self, lifecycle):
        created = lifecycle.create_patient(john_doe())

        updated = lifecycle.update_patient(
            created.id, PatientUpdateInput(name="Johnny", email="john@example.com", address="1 Main St")
        )

        assert updated.name == "Johnny"

    def test_update_to_other_patients_email_conflicts(self, lifecycle, publisher):
        lifecycle.create_patient(john_doe())
        jane = lifecycle.create_patient(john_doe(name="Jane Doe", email="jane@example.com"))
        published_before = len(publisher.published)

        with pytest.raises(ConflictError):
            lifecycle.update_patient(jane.id, PatientUpdateInput(name="Jane Doe", email="john@example.com", address="x"))

        assert lifecycle.get_patient(jane.id).email == "jane@example.com"
        assert len(publisher.published) == published_before

    def test_unknown_id_is_not_found_even_when_email_is_taken(self, lifecycle, publisher):
        lifecycle.create_patient(john_doe())
        published_before = len(publisher.published)

        with pytest.raises(ResourceNotFoundError):
            lifecycle.update_patient(uuid4(), PatientUpdateInput(name="Ghost", email="john@example.com", address="x"))

        assert len(publisher.published) == published_before

    def test_store_lost_after_update_commit_still_succeeds(self, lifecycle, publisher, session, monkeypatch):
        created = lifecycle.create_patient(john_doe())
        lose_store_after_commit(session, monkeypatch)

        updated = lifecycle.update_patient(created.id, PatientUpdateInput(name="Johnny", email="john@example.com", address="1 Main St"))

        assert updated.name == "Johnny"
        assert publisher.events[-1].event_type == PatientEventType.UPDATED

    def test_update_missing_patient(self, lifecycle):
        with pytest.raises(ResourceNotFoundError):
            lifecycle.update_patient(uuid4(), PatientUpdateInput(name="A", email="a@example.com", address="x"))

    def test_update_validates_before_lookup(self, lifecycle):
        with pytest.raises(InputValidationError):
            lifecycle.update_patient(uuid4(), PatientUpdateInput(name="A", email="a@example.com"))

    def test_update_after_delete_is_not_found(self, lifecycle):
        created = lifecycle.create_patient(john_doe())
        lifecycle.delete_patient(created.id)

        with pytest.raises(ResourceNotFoundError):
            lifecycle.update_patient(created.id, PatientUpdateInput(name="A", email="a@example.com", address="x"))


class TestDeletePatient:
    def test_delete_then_delete_again(self, lifecycle, publisher):
        created = lifecycle.create_patient(john_doe())

        lifecycle.delete_patient(created.id)

        with pytest.raises(ResourceNotFoundError):
            lifecycle.delete_patient(created.id)
        with pytest.raises(ResourceNotFoundError):
            lifecycle.get_patient(created.id)
        assert [e.event_type for e in publisher.events] == [PatientEventType.CREATED, PatientEventType.DELETED]
        deleted_event = publisher.events[-1]
        assert deleted_event.patient_id == created.id
        assert deleted_event.email == "john@example.com"

    def test_email_reusable_after_delete(self, lifecycle):
        created = lifecycle.create_patient(john_doe())
        lifecycle.delete_patient(created.id)

        recreated = lifecycle.create_patient(john_doe())

        assert recreated.id != created.id

    def test_concurrent_delete_is_not_found(self, lifecycle, monkeypatch):
        created = lifecycle.create_patient(john_doe())
        monkeypatch.setattr(lifecycle.repository, "delete", lambda id_: False)

        with pytest.raises(ResourceNotFoundError):
            lifecycle.delete_patient(created.id)


class TestListPatients:
    def test_empty(self, lifecycle):
        assert lifecycle.list_patients() == []

    def test_ordered_by_registered_date_then_name(self, lifecycle):
        lifecycle.create_patient(john_doe(name="Zed", email="zed@example.com", registeredDate="2024-03-01"))
        lifecycle.create_patient(john_doe(name="Bob", email="bob@example.com", registeredDate="2024-01-01"))
        lifecycle.create_patient(john_doe(name="Amy", email="amy@example.com", registeredDate="2024-03-01"))

        assert [p.name for p in lifecycle.list_patients()] == ["Bob", "Amy", "Zed"]

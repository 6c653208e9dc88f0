"""Patient repository - the record store behind the patient lifecycle.

Each write runs in its own scoped transaction that is committed or rolled
back before the method returns. SQLAlchemy failures surface as ``StoreError``;
a unique constraint violation on email surfaces as ``ConflictError``.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from patient_service.exceptions import ConflictError, StoreError
from patient_service.models.db_model import Patient as PatientModel


class PatientRepository:
    """Repository for patient data persistence."""

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _reading(self, operation: str) -> Generator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Repository: {operation} failed: {e}")
            raise StoreError(f"Record store unavailable during {operation}") from e

    @contextmanager
    def _transaction(self, operation: str, email: str | None = None) -> Generator[None]:
        """Run the enclosed write and commit it, rolling back on any failure."""
        try:
            yield
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if email is None:
                logger.error(f"Repository: {operation} violated a constraint: {e}")
                raise StoreError(f"Record store rejected {operation}") from e
            logger.debug(f"Repository: {operation} hit the unique email constraint for {email}")
            raise ConflictError(email) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Repository: {operation} failed, rolled back: {e}")
            raise StoreError(f"Record store unavailable during {operation}") from e

    def find_by_id(self, id_: UUID) -> PatientModel | None:
        with self._reading("find_by_id"):
            return self.session.get(PatientModel, id_)

    def find_by_email(self, email: str) -> PatientModel | None:
        with self._reading("find_by_email"):
            return self.session.exec(select(PatientModel).where(PatientModel.email == email)).first()

    def find_all(self) -> list[PatientModel]:
        with self._reading("find_all"):
            stmt = select(PatientModel).order_by(PatientModel.registered_date, PatientModel.name)
            return list(self.session.exec(stmt).all())

    def insert(self, patient: PatientModel) -> PatientModel:
        """Insert a new patient.

        Returns:
            A detached copy of the row as written
        """
        with self._transaction("insert", email=patient.email):
            self.session.add(patient)
            self.session.flush()
            saved = _snapshot(patient)
        return saved

    def update(self, patient: PatientModel, changes: dict[str, Any]) -> PatientModel:
        """Apply ``changes`` to a loaded patient and persist them.

        Returns:
            A detached copy of the row as written
        """
        with self._transaction("update", email=changes.get("email")):
            patient.sqlmodel_update(changes)
            self.session.add(patient)
            self.session.flush()
            saved = _snapshot(patient)
        return saved

    def delete(self, id_: UUID) -> bool:
        """Delete a patient by ID.

        Returns:
            True if a row was deleted, False if none matched
        """
        with self._transaction("delete"):
            result = self.session.exec(delete(PatientModel).where(PatientModel.id == id_))
        return result.rowcount > 0


def _snapshot(patient: PatientModel) -> PatientModel:
    # Taken before commit: nothing reads the store once the write is committed
    return PatientModel(**patient.model_dump())

"""Database package for the patient service.

This package provides database connection utilities and Alembic migration helpers.
"""

from .connection import borrow_db_session, dispose_db, get_db_session, get_engine, is_healthy
from .migrations import upgrade_schema

__all__ = [
    "borrow_db_session",
    "get_db_session",
    "get_engine",
    "is_healthy",
    "dispose_db",
    "upgrade_schema",
]

"""Tests for the patient-service command line."""

import pytest
from sqlalchemy import create_engine, inspect
from typer.testing import CliRunner

from patient_service.main import app
from patient_service.settings import get_settings

runner = CliRunner()


@pytest.fixture
def settings_snapshot():
    """CLI overrides mutate the cached settings; restore them afterwards."""
    settings = get_settings()
    saved = settings.model_dump()
    yield settings
    for key, value in saved.items():
        setattr(settings, key, value)


def test_db_upgrade_creates_patients_table(tmp_path, settings_snapshot):
    url = f"sqlite:///{tmp_path / 'patients.db'}"

    result = runner.invoke(app, ["db", "upgrade", "--database-url", url])

    assert result.exit_code == 0, result.output
    assert "Database schema is up to date" in result.output
    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert "patients" in inspector.get_table_names()
        columns = {c["name"] for c in inspector.get_columns("patients")}
        assert {"id", "name", "email", "address", "date_of_birth", "registered_date"} <= columns
        assert any(ix["unique"] and ix["column_names"] == ["email"] for ix in inspector.get_indexes("patients"))
    finally:
        engine.dispose()


def test_db_upgrade_without_database_url_fails(settings_snapshot):
    settings_snapshot.database_url = None

    result = runner.invoke(app, ["db", "upgrade"])

    assert result.exit_code == 1
    assert "Database URL missing" in result.output


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "run" in result.output
    assert "db" in result.output

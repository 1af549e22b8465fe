"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest  # type: ignore[import-not-found]

from tlogg.core.database import Database
from tlogg.core.repository import LogRepository
from tlogg.core.schema import SchemaStore


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")


@pytest.fixture  # type: ignore[misc]
def db_path(tmp_path: Path) -> Path:
    """Path of a dataset that does not exist yet."""
    return tmp_path / "data" / "tlogg.sqlite"


@pytest.fixture  # type: ignore[misc]
def database(db_path: Path) -> Database:
    """Open an empty, unmigrated database."""
    db = Database(db_path, lock_retry_delay=0)
    yield db
    db.close()


@pytest.fixture  # type: ignore[misc]
def repository(database: Database) -> LogRepository:
    """Repository on a freshly migrated database."""
    SchemaStore(database).migrate()
    return LogRepository(database)

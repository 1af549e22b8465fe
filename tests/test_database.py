"""Tests for the database wrapper."""

import sqlite3
from pathlib import Path

import pytest  # type: ignore[import-not-found]
from sqlalchemy.exc import IntegrityError, OperationalError

from tlogg.core import database as database_module
from tlogg.core.database import Database, is_lock_error
from tlogg.core.errors import NotFoundError, StorageError


def locked_error() -> OperationalError:
    """Build the error SQLAlchemy raises on a locked SQLite file."""
    return OperationalError("INSERT", {}, sqlite3.OperationalError("database is locked"))


class TestDatabase:
    """Test Database."""

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """Test that the data directory is created on first use."""
        db_path = tmp_path / "nested" / "dir" / "tlogg.sqlite"

        with Database(db_path):
            assert db_path.parent.exists()

    def test_path_with_url_characters(self, tmp_path: Path) -> None:
        """Test that directories containing ? and # are used verbatim."""
        db_path = tmp_path / "odd?dir#1" / "tlogg.sqlite"

        with Database(db_path) as db:
            with db.connection_scope() as conn:
                conn.exec_driver_sql("CREATE TABLE scratch (id INTEGER)")

        assert db_path.exists()
        assert [p.name for p in db_path.parent.iterdir()] == ["tlogg.sqlite"]

    def test_foreign_keys_enabled(self, database: Database) -> None:
        """Test that every connection enforces foreign keys."""
        with database.connection_scope() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    def test_ddl_rolls_back(self, database: Database) -> None:
        """Test that DDL takes part in transactions."""
        with pytest.raises(RuntimeError):
            with database.connection_scope() as conn:
                conn.exec_driver_sql("CREATE TABLE scratch (id INTEGER)")
                conn.exec_driver_sql("PRAGMA user_version = 9")
                raise RuntimeError("abort")

        with database.read_connection() as conn:
            assert conn.exec_driver_sql("PRAGMA user_version").scalar() == 0
            tables = conn.exec_driver_sql(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).all()
        assert tables == []

    def test_session_scope_commits(self, database: Database) -> None:
        """Test that session_scope commits on success."""
        with database.connection_scope() as conn:
            conn.exec_driver_sql("CREATE TABLE scratch (id INTEGER)")

        with database.session_scope() as session:
            session.connection().exec_driver_sql("INSERT INTO scratch VALUES (1)")

        with database.read_connection() as conn:
            assert conn.exec_driver_sql("SELECT count(*) FROM scratch").scalar() == 1

    def test_session_scope_rolls_back(self, database: Database) -> None:
        """Test that session_scope rolls back and re-raises on error."""
        with database.connection_scope() as conn:
            conn.exec_driver_sql("CREATE TABLE scratch (id INTEGER)")

        with pytest.raises(NotFoundError):
            with database.session_scope() as session:
                session.connection().exec_driver_sql("INSERT INTO scratch VALUES (1)")
                raise NotFoundError("entry", 1)

        with database.read_connection() as conn:
            assert conn.exec_driver_sql("SELECT count(*) FROM scratch").scalar() == 0


class TestExecuteWithRetry:
    """Test lock retry handling."""

    @pytest.fixture(autouse=True)  # type: ignore[misc]
    def no_sleep(self, monkeypatch: pytest.MonkeyPatch) -> list[float]:
        """Record sleeps instead of waiting."""
        sleeps: list[float] = []
        monkeypatch.setattr(database_module.time, "sleep", sleeps.append)
        return sleeps

    def test_returns_result(self, database: Database) -> None:
        """Test that a successful operation runs once."""
        calls = []

        def operation() -> str:
            calls.append(1)
            return "ok"

        assert database.execute_with_retry(operation) == "ok"
        assert len(calls) == 1

    def test_retries_once_on_lock(self, database: Database, no_sleep: list[float]) -> None:
        """Test that a lock error is retried after a backoff."""
        database.lock_retry_delay = 0.5
        calls = []

        def operation() -> str:
            calls.append(1)
            if len(calls) == 1:
                raise locked_error()
            return "ok"

        assert database.execute_with_retry(operation) == "ok"
        assert len(calls) == 2
        assert no_sleep == [0.5]

    def test_persistent_lock_becomes_storage_error(self, database: Database) -> None:
        """Test that a second lock error is fatal."""
        calls = []

        def operation() -> None:
            calls.append(1)
            raise locked_error()

        with pytest.raises(StorageError, match="locked"):
            database.execute_with_retry(operation)
        assert len(calls) == 2

    def test_other_driver_errors_not_retried(self, database: Database) -> None:
        """Test that non-lock driver errors fail immediately."""
        calls = []

        def operation() -> None:
            calls.append(1)
            raise OperationalError("SELECT", {}, sqlite3.OperationalError("disk I/O error"))

        with pytest.raises(StorageError, match="disk I/O error"):
            database.execute_with_retry(operation)
        assert len(calls) == 1

    def test_integrity_error_is_storage_error(self, database: Database) -> None:
        """Test that untranslated constraint errors surface as storage errors."""

        def operation() -> None:
            raise IntegrityError("INSERT", {}, sqlite3.IntegrityError("NOT NULL constraint failed"))

        with pytest.raises(StorageError):
            database.execute_with_retry(operation)

    def test_domain_errors_pass_through(self, database: Database) -> None:
        """Test that tlogg errors are not wrapped or retried."""
        calls = []

        def operation() -> None:
            calls.append(1)
            raise NotFoundError("entry", 42)

        with pytest.raises(NotFoundError):
            database.execute_with_retry(operation)
        assert len(calls) == 1


class TestIsLockError:
    """Test is_lock_error."""

    def test_locked(self) -> None:
        """Test detection of 'database is locked'."""
        assert is_lock_error(locked_error())

    def test_busy(self) -> None:
        """Test detection of 'database is busy'."""
        assert is_lock_error(sqlite3.OperationalError("database is busy"))

    def test_other(self) -> None:
        """Test that other errors are not lock errors."""
        assert not is_lock_error(sqlite3.OperationalError("no such table: project"))

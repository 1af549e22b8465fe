"""Tests for schema versioning and migrations."""

from pathlib import Path

import pytest  # type: ignore[import-not-found]
from sqlalchemy import inspect

from tlogg.core.database import Database
from tlogg.core.errors import MigrationError, UnknownSchemaVersionError
from tlogg.core.models import Base
from tlogg.core.schema import (
    MIGRATIONS,
    SCHEMA_VERSION,
    Migration,
    SchemaStore,
    check_schema_version,
)


def table_names(database: Database) -> set[str]:
    """Names of user tables in the dataset."""
    return {name for name in inspect(database.engine).get_table_names() if not name.startswith("sqlite_")}


def set_user_version(database: Database, version: int) -> None:
    """Write a raw schema version marker."""
    with database.connection_scope() as conn:
        conn.exec_driver_sql(f"PRAGMA user_version = {version}")


class TestSchemaStore:
    """Test SchemaStore."""

    def test_new_dataset_is_version_zero(self, database: Database, db_path: Path) -> None:
        """Test that a dataset that was never initialized reports version 0."""
        store = SchemaStore(database)

        assert store.current_version() == 0
        assert db_path.exists()

    def test_migrate_creates_tables(self, database: Database) -> None:
        """Test migrating an empty dataset to the current version."""
        store = SchemaStore(database)

        version = store.migrate()

        assert version == SCHEMA_VERSION
        assert store.current_version() == SCHEMA_VERSION
        assert table_names(database) == {"project", "log_entry"}

    def test_migrated_tables_match_models(self, database: Database) -> None:
        """Test that migration DDL creates the columns the ORM models expect."""
        SchemaStore(database).migrate()
        inspector = inspect(database.engine)

        for table in Base.metadata.sorted_tables:
            columns = {c["name"] for c in inspector.get_columns(table.name)}
            assert columns == {c.name for c in table.columns}

    def test_migrate_is_idempotent(self, database: Database) -> None:
        """Test that migrating twice changes nothing the second time."""
        store = SchemaStore(database)
        store.migrate()
        tables_before = table_names(database)

        assert store.migrate() == SCHEMA_VERSION
        assert store.current_version() == SCHEMA_VERSION
        assert table_names(database) == tables_before

    def test_migrate_rejects_newer_dataset(self, database: Database) -> None:
        """Test that a dataset from a newer release is refused."""
        set_user_version(database, SCHEMA_VERSION + 1)
        store = SchemaStore(database)

        with pytest.raises(UnknownSchemaVersionError) as exc_info:
            store.migrate()

        assert exc_info.value.found == SCHEMA_VERSION + 1
        assert exc_info.value.supported == SCHEMA_VERSION
        assert store.current_version() == SCHEMA_VERSION + 1

    def test_pending_versions(self, database: Database) -> None:
        """Test listing the steps that still need to run."""
        store = SchemaStore(database)

        assert store.pending_versions() == list(range(1, SCHEMA_VERSION + 1))
        store.migrate()
        assert store.pending_versions() == []

    def test_missing_step_is_an_error(self, database: Database) -> None:
        """Test that a target without a registered step is refused."""
        store = SchemaStore(database)

        with pytest.raises(MigrationError):
            store.migrate(SCHEMA_VERSION + 1)

        assert store.current_version() == 0

    def test_failed_step_is_rolled_back(self, database: Database) -> None:
        """Test that a failing step leaves neither tables nor version bump."""
        broken = MIGRATIONS + (
            Migration(
                version=SCHEMA_VERSION + 1,
                description="broken step",
                statements=(
                    "CREATE TABLE half_done (id INTEGER PRIMARY KEY)",
                    "THIS IS NOT SQL",
                ),
            ),
        )
        store = SchemaStore(database, migrations=broken)

        with pytest.raises(MigrationError):
            store.migrate(SCHEMA_VERSION + 1)

        # Earlier steps stay applied, the broken one leaves no trace.
        assert store.current_version() == SCHEMA_VERSION
        assert "half_done" not in table_names(database)

    def test_steps_applied_in_order(self, database: Database) -> None:
        """Test that several pending steps all run, lowest first."""
        extended = MIGRATIONS + (
            Migration(
                version=SCHEMA_VERSION + 1,
                description="add tag table",
                statements=("CREATE TABLE tag (id INTEGER PRIMARY KEY, name TEXT)",),
            ),
            Migration(
                version=SCHEMA_VERSION + 2,
                description="add tag index",
                statements=("CREATE INDEX ix_tag_name ON tag (name)",),
            ),
        )
        store = SchemaStore(database, migrations=extended)

        assert store.migrate(SCHEMA_VERSION + 2) == SCHEMA_VERSION + 2
        assert "tag" in table_names(database)
        assert store.current_version() == SCHEMA_VERSION + 2

    def test_duplicate_versions_rejected(self, database: Database) -> None:
        """Test that a migration list with repeated versions is refused."""
        with pytest.raises(ValueError):
            SchemaStore(database, migrations=MIGRATIONS + MIGRATIONS)


class TestCheckSchemaVersion:
    """Test check_schema_version."""

    def test_accepts_current_version(self, database: Database) -> None:
        """Test that a migrated dataset passes the check."""
        SchemaStore(database).migrate()

        with database.connection_scope() as conn:
            check_schema_version(conn)

    def test_rejects_unmigrated_dataset(self, database: Database) -> None:
        """Test that an unmigrated dataset fails the check."""
        with database.connection_scope() as conn:
            with pytest.raises(MigrationError):
                check_schema_version(conn)

    def test_rejects_newer_dataset(self, database: Database) -> None:
        """Test that a newer dataset fails the check."""
        set_user_version(database, SCHEMA_VERSION + 5)

        with database.connection_scope() as conn:
            with pytest.raises(UnknownSchemaVersionError):
                check_schema_version(conn)

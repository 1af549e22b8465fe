"""Schema versioning and migrations.

The dataset's schema version lives in SQLite's ``PRAGMA user_version``.
Version 0 means the file has never been initialized. Each migration step
runs its DDL and the version bump inside one transaction, so the stored
version always matches the tables that actually exist.

To change the schema, append a new Migration with the next version number
and raise SCHEMA_VERSION. Never edit a released step.
"""

import logging
from dataclasses import dataclass
from functools import partial

from sqlalchemy import Connection
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from tlogg.core.database import Database, is_lock_error
from tlogg.core.errors import MigrationError, UnknownSchemaVersionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """One schema step.

    Attributes:
        version: Schema version after this step has been applied
        description: Short summary for logs
        statements: DDL statements, executed in order
    """

    version: int
    description: str
    statements: tuple[str, ...]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        version=1,
        description="create project and log_entry tables",
        statements=(
            """
            CREATE TABLE project (
                id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
                name VARCHAR NOT NULL UNIQUE,
                description TEXT NOT NULL DEFAULT '',
                created_at DATETIME NOT NULL,
                CONSTRAINT ck_project_name_not_empty CHECK (length(name) > 0)
            )
            """,
            """
            CREATE TABLE log_entry (
                id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
                duration FLOAT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                project_id INTEGER NOT NULL
                    REFERENCES project (id) ON DELETE RESTRICT,
                created_at DATETIME NOT NULL,
                CONSTRAINT ck_log_entry_duration_positive CHECK (duration > 0)
            )
            """,
            "CREATE INDEX ix_log_entry_project_id ON log_entry (project_id)",
            "CREATE INDEX ix_log_entry_created_at ON log_entry (created_at)",
        ),
    ),
)

SCHEMA_VERSION = MIGRATIONS[-1].version


def read_user_version(conn: Connection) -> int:
    """Read ``PRAGMA user_version`` on an open connection."""
    return int(conn.exec_driver_sql("PRAGMA user_version").scalar() or 0)


class SchemaStore:
    """Reads and advances the schema version of a dataset."""

    def __init__(self, database: Database, migrations: tuple[Migration, ...] = MIGRATIONS):
        """Initialize schema store.

        Args:
            database: Open database
            migrations: Ordered migration steps. Defaults to MIGRATIONS
        """
        self.database = database
        self.migrations = {m.version: m for m in migrations}
        if len(self.migrations) != len(migrations):
            raise ValueError("Duplicate migration versions")

    def current_version(self) -> int:
        """Get the persisted schema version.

        Returns:
            Stored version, 0 for a dataset that was never initialized

        Raises:
            StorageError: If the dataset cannot be read
        """

        def _read() -> int:
            with self.database.read_connection() as conn:
                return read_user_version(conn)

        return self.database.execute_with_retry(_read)

    def pending_versions(self, target_version: int = SCHEMA_VERSION) -> list[int]:
        """List the step versions migrate() would apply, in order.

        Raises:
            UnknownSchemaVersionError: If the dataset is newer than target_version
        """
        current = self.current_version()
        if current > target_version:
            raise UnknownSchemaVersionError(current, target_version)
        return list(range(current + 1, target_version + 1))

    def migrate(self, target_version: int = SCHEMA_VERSION) -> int:
        """Bring the dataset up to target_version.

        Each pending step runs in its own transaction. A failing step is
        rolled back completely; steps applied before it stay applied.

        Args:
            target_version: Version to reach. Defaults to SCHEMA_VERSION

        Returns:
            The schema version after migrating (always target_version)

        Raises:
            UnknownSchemaVersionError: If the dataset is newer than target_version
            MigrationError: If a step is missing or fails
            StorageError: If the dataset stays locked
        """
        pending = self.pending_versions(target_version)
        if not pending:
            logger.debug("Schema is at version %d, nothing to migrate", target_version)
            return target_version

        missing = [v for v in pending if v not in self.migrations]
        if missing:
            raise MigrationError(f"No migration step defined for version(s) {missing}")

        logger.info("Schema migration required: %d < %d", pending[0] - 1, target_version)
        for version in pending:
            self.database.execute_with_retry(partial(self._apply, self.migrations[version]))

        return target_version

    def _apply(self, migration: Migration) -> None:
        """Apply one step and bump the version in a single transaction."""
        logger.info("Running migration to version %d: %s", migration.version, migration.description)
        try:
            with self.database.connection_scope() as conn:
                # Another process may have migrated while we waited for the lock.
                found = read_user_version(conn)
                if found >= migration.version:
                    logger.info("Version %d already applied, skipping", migration.version)
                    return
                if found != migration.version - 1:
                    raise MigrationError(
                        f"Cannot apply migration {migration.version} to schema version {found}"
                    )
                for statement in migration.statements:
                    conn.exec_driver_sql(statement)
                conn.exec_driver_sql(f"PRAGMA user_version = {int(migration.version)}")
        except OperationalError as e:
            if is_lock_error(e):
                raise
            raise MigrationError(f"Migration to version {migration.version} failed: {e.orig}") from e
        except SQLAlchemyError as e:
            raise MigrationError(f"Migration to version {migration.version} failed: {e}") from e


def check_schema_version(conn: Connection, expected: int = SCHEMA_VERSION) -> None:
    """Refuse to work on a dataset that is not at the expected version.

    Raises:
        UnknownSchemaVersionError: If the dataset is newer than expected
        MigrationError: If the dataset still needs migrating
    """
    found = read_user_version(conn)
    if found > expected:
        raise UnknownSchemaVersionError(found, expected)
    if found < expected:
        raise MigrationError(
            f"Database schema is at version {found}, expected {expected}. Migrate it first."
        )

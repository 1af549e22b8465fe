"""SQLite engine and session lifecycle with lock retry."""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import Connection, Engine, create_engine, event
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from tlogg.core.errors import StorageError
from tlogg.core.paths import get_database_path

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_lock_error(error: BaseException) -> bool:
    """Check whether an error is SQLite lock contention."""
    message = str(getattr(error, "orig", error)).lower()
    return "locked" in message or "busy" in message


class Database:
    """Owns the connection to one tlogg dataset.

    Every connection runs with ``PRAGMA foreign_keys = ON``. The pysqlite
    driver's implicit transaction handling is switched off and ``BEGIN`` is
    emitted explicitly, so DDL and ``PRAGMA user_version`` take part in
    transactions like any other statement.

    Usage:
        with Database(path) as db:
            with db.session_scope() as session:
                session.add(project)
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        busy_timeout: float = 1.0,
        lock_retry_delay: float = 0.25,
    ):
        """Initialize database.

        Args:
            db_path: Dataset file. Defaults to the per-user data directory
            busy_timeout: Seconds SQLite waits on a locked database before failing
            lock_retry_delay: Seconds to wait before the single retry on lock errors
        """
        self.db_path = Path(db_path).expanduser() if db_path else get_database_path()
        self.lock_retry_delay = lock_retry_delay

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self.db_path.parent}: {e}") from e

        logger.debug("Opening database %s", self.db_path)
        self.engine: Engine = create_engine(
            URL.create("sqlite", database=str(self.db_path)),
            connect_args={"timeout": busy_timeout},
        )
        event.listen(self.engine, "connect", self._on_connect)
        event.listen(self.engine, "begin", self._on_begin)

        self.SessionLocal: sessionmaker[Session] = sessionmaker(
            bind=self.engine,
            autoflush=True,
            expire_on_commit=False,
        )

    @staticmethod
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Hand transaction control to SQLAlchemy; foreign keys are per connection.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @staticmethod
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release all pooled connections."""
        logger.debug("Closing database %s", self.db_path)
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations.

        Commits on success, rolls back on any exception and re-raises it.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def connection_scope(self) -> Iterator[Connection]:
        """Provide a Core connection inside a single transaction."""
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def read_connection(self) -> Iterator[Connection]:
        """Provide a Core connection without opening a write transaction."""
        with self.engine.connect() as conn:
            yield conn

    def execute_with_retry(self, operation: Callable[[], T]) -> T:
        """Run a database operation, retrying once on lock contention.

        Args:
            operation: Callable performing one complete transaction

        Returns:
            Result of the operation

        Raises:
            StorageError: If the database stays locked or another driver
                error occurs
        """
        try:
            return operation()
        except DBAPIError as e:
            if not (isinstance(e, OperationalError) and is_lock_error(e)):
                raise StorageError(f"Database error: {e.orig}") from e
            logger.warning("Database locked, retrying in %ss", self.lock_retry_delay)

        time.sleep(self.lock_retry_delay)
        try:
            return operation()
        except DBAPIError as e:
            raise StorageError(f"Database error: {e.orig}") from e

"""Validated access to projects and log entries."""

import logging
import math
from datetime import datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tlogg.core.database import Database
from tlogg.core.errors import (
    DuplicateNameError,
    InvalidDurationError,
    InvalidInputError,
    NoDefaultProjectError,
    NotFoundError,
    ProjectInUseError,
    StorageError,
)
from tlogg.core.models import LogEntry, Project
from tlogg.core.schema import SCHEMA_VERSION, check_schema_version

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LogRepository:
    """CRUD operations over projects and log entries.

    Each public method runs as one transaction. The dataset must already be
    at SCHEMA_VERSION; use SchemaStore.migrate() first; this class never
    migrates by itself.

    Uniqueness of project names and the entry -> project reference are
    enforced by the database schema. The checks made here only produce
    clearer errors; constraint violations reported by SQLite are translated
    into the same exceptions.
    """

    def __init__(self, database: Database, schema_version: int = SCHEMA_VERSION):
        """Initialize repository.

        Args:
            database: Open database
            schema_version: Schema version this repository expects
        """
        self.database = database
        self.schema_version = schema_version

    def _run(self, operation: Callable[[Session], T]) -> T:
        """Run operation inside a checked transaction, retrying once on lock."""

        def _transaction() -> T:
            with self.database.session_scope() as session:
                check_schema_version(session.connection(), self.schema_version)
                return operation(session)

        return self.database.execute_with_retry(_transaction)

    # Project operations

    def add_project(self, name: str, description: str = "") -> Project:
        """Create a new project.

        Args:
            name: Unique project name
            description: Free-form description

        Returns:
            Created project

        Raises:
            InvalidInputError: If name is empty
            DuplicateNameError: If a project with this name exists
        """
        if not name or not name.strip():
            raise InvalidInputError("Project name must not be empty")

        def _add(session: Session) -> Project:
            if self._find_project(session, name) is not None:
                raise DuplicateNameError(name)
            project = Project(name=name, description=description or "", created_at=datetime.now())
            session.add(project)
            try:
                session.flush()
            except IntegrityError as e:
                raise _translate_integrity_error(e, name, removing=False) from e
            return project

        project = self._run(_add)
        logger.info("Added project %s (id=%s)", project.name, project.id)
        return project

    def remove_project(self, name: str) -> None:
        """Delete a project that has no log entries.

        Raises:
            NotFoundError: If the project does not exist
            ProjectInUseError: If log entries still reference it
        """

        def _remove(session: Session) -> None:
            project = self._find_project(session, name)
            if project is None:
                raise NotFoundError("project", name)

            entry_count = session.scalar(
                select(func.count()).select_from(LogEntry).where(LogEntry.project_id == project.id)
            )
            if entry_count:
                raise ProjectInUseError(name, entry_count)

            session.delete(project)
            try:
                session.flush()
            except IntegrityError as e:
                raise _translate_integrity_error(e, name) from e

        self._run(_remove)
        logger.info("Removed project %s", name)

    def get_project(self, name: str) -> Project:
        """Get project by name.

        Raises:
            NotFoundError: If no such project exists
        """

        def _get(session: Session) -> Project:
            project = self._find_project(session, name)
            if project is None:
                raise NotFoundError("project", name)
            return project

        return self._run(_get)

    def list_projects(self) -> list[Project]:
        """List all projects in creation order."""

        def _list(session: Session) -> list[Project]:
            return list(session.scalars(select(Project).order_by(Project.id)))

        return self._run(_list)

    def last_project(self) -> Optional[Project]:
        """Get the project of the most recently created entry.

        Returns:
            Project or None if the log is empty
        """
        return self._run(self._last_project)

    # Entry operations

    def add_entry(
        self,
        duration: float,
        description: str,
        project_name: Optional[str] = None,
    ) -> LogEntry:
        """Log hours against a project.

        Args:
            duration: Hours spent, must be > 0
            description: Short description of the work
            project_name: Project to log on. Defaults to the project of the
                most recent entry

        Returns:
            Created entry

        Raises:
            InvalidDurationError: If duration is not a positive number
            NotFoundError: If project_name does not exist
            NoDefaultProjectError: If no project is given and the log is empty
        """
        try:
            hours = float(duration)
        except (TypeError, ValueError):
            raise InvalidDurationError(duration)
        if not math.isfinite(hours) or hours <= 0:
            raise InvalidDurationError(duration)

        def _add(session: Session) -> LogEntry:
            if project_name is None:
                project = self._last_project(session)
                if project is None:
                    raise NoDefaultProjectError()
                logger.debug("No project given, using last project %s", project.name)
            else:
                project = self._find_project(session, project_name)
                if project is None:
                    raise NotFoundError("project", project_name)

            entry = LogEntry(
                duration=hours,
                description=description or "",
                project=project,
                created_at=datetime.now(),
            )
            session.add(entry)
            try:
                session.flush()
            except IntegrityError as e:
                raise _translate_integrity_error(e, project.name, removing=False) from e
            return entry

        entry = self._run(_add)
        logger.info("Added entry %s: %sh on %s", entry.id, entry.duration, entry.project_name)
        return entry

    def remove_entry(self, entry_id: int) -> None:
        """Delete a log entry.

        Raises:
            NotFoundError: If no entry has this id
        """

        def _remove(session: Session) -> None:
            entry = session.get(LogEntry, entry_id)
            if entry is None:
                raise NotFoundError("entry", entry_id)
            session.delete(entry)

        self._run(_remove)
        logger.info("Removed entry %s", entry_id)

    def get_entry(self, entry_id: int) -> LogEntry:
        """Get entry by id.

        Raises:
            NotFoundError: If no entry has this id
        """

        def _get(session: Session) -> LogEntry:
            entry = session.get(LogEntry, entry_id)
            if entry is None:
                raise NotFoundError("entry", entry_id)
            return entry

        return self._run(_get)

    def list_entries(
        self,
        since: Optional[datetime] = None,
        project_name: Optional[str] = None,
    ) -> list[LogEntry]:
        """List entries in creation order.

        Args:
            since: Only entries created at or after this moment
            project_name: Only entries of this project

        Returns:
            Matching entries, oldest first

        Raises:
            NotFoundError: If project_name does not exist
        """

        def _list(session: Session) -> list[LogEntry]:
            query = select(LogEntry).order_by(LogEntry.id)
            if since is not None:
                query = query.where(LogEntry.created_at >= since)
            if project_name is not None:
                project = self._find_project(session, project_name)
                if project is None:
                    raise NotFoundError("project", project_name)
                query = query.where(LogEntry.project_id == project.id)
            return list(session.scalars(query))

        return self._run(_list)

    # Helpers

    @staticmethod
    def _find_project(session: Session, name: str) -> Optional[Project]:
        return session.scalar(select(Project).where(Project.name == name))

    @staticmethod
    def _last_project(session: Session) -> Optional[Project]:
        entry = session.scalar(select(LogEntry).order_by(LogEntry.id.desc()).limit(1))
        return entry.project if entry is not None else None


def _translate_integrity_error(
    error: IntegrityError, name: str, removing: bool = True
) -> Exception:
    """Map a SQLite constraint violation onto the domain error for it.

    A foreign key failure means the project is still referenced when
    removing, and that it does not exist when inserting an entry.
    """
    message = str(error.orig).lower()
    if "unique" in message:
        return DuplicateNameError(name)
    if "foreign key" in message:
        if not removing:
            return NotFoundError("project", name)
        return ProjectInUseError(name)
    if "ck_project_name_not_empty" in message:
        return InvalidInputError("Project name must not be empty")
    if "ck_log_entry_duration_positive" in message:
        return InvalidDurationError(None)
    return StorageError(f"Constraint violation: {error.orig}")

"""Exception hierarchy for tlogg.

Core components raise these exceptions; only the CLI turns them into
messages and process exit codes. Each class carries the exit code used
for that failure category:

    0  success
    1  configuration error
    2  command line usage error (reported by click)
    3  validation error
    4  not found
    5  conflict
    6  migration error
    7  storage error
"""

from typing import Any, Optional


class TloggError(Exception):
    """Base exception for all tlogg errors."""

    exit_code = 1


class ConfigError(TloggError):
    """Configuration file could not be loaded or is invalid."""

    exit_code = 1


# Validation


class ValidationError(TloggError):
    """Input rejected before anything was written."""

    exit_code = 3


class InvalidInputError(ValidationError):
    """A required value is empty or malformed."""


class InvalidDurationError(ValidationError):
    """Duration is not a positive, finite number of hours."""

    def __init__(self, duration: Any):
        self.duration = duration
        super().__init__(f"Duration must be a positive number of hours, got {duration!r}")


# Lookup


class NotFoundError(TloggError):
    """Referenced project or entry does not exist."""

    exit_code = 4

    def __init__(self, kind: str, identifier: Any):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found: {identifier}")


class NoDefaultProjectError(NotFoundError):
    """No project was given and the log has no entry to take one from."""

    def __init__(self) -> None:
        TloggError.__init__(
            self, "No project given and no previous entry to take it from. Use --project."
        )
        self.kind = "project"
        self.identifier = None


# Conflicts


class ConflictError(TloggError):
    """Operation would break a uniqueness or reference constraint."""

    exit_code = 5


class DuplicateNameError(ConflictError):
    """A project with this name already exists."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Project already exists: {name}")


class ProjectInUseError(ConflictError):
    """Project still has log entries referencing it."""

    def __init__(self, name: str, entry_count: Optional[int] = None):
        self.name = name
        self.entry_count = entry_count
        detail = f" ({entry_count} entries)" if entry_count else ""
        super().__init__(
            f"Project '{name}' still has log entries{detail}. Remove them first."
        )


# Storage


class MigrationError(TloggError):
    """Schema migration failed or the schema is not at the expected version."""

    exit_code = 6


class UnknownSchemaVersionError(MigrationError):
    """Dataset was written by a newer release than this one supports."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Database schema version {found} is newer than the supported "
            f"version {supported}. Upgrade tlogg to use this database."
        )


class StorageError(TloggError):
    """I/O failure or persistent lock contention on the dataset."""

    exit_code = 7

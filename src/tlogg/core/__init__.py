"""Core functionality for time logging."""

from tlogg.core.database import Database
from tlogg.core.models import LogEntry, Project
from tlogg.core.repository import LogRepository
from tlogg.core.schema import SCHEMA_VERSION, SchemaStore

__all__ = ["Database", "LogEntry", "LogRepository", "Project", "SCHEMA_VERSION", "SchemaStore"]

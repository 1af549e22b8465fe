"""Core data models for time logging.

The tables behind these models are created by the migration steps in
tlogg.core.schema, not by ``Base.metadata.create_all``. Column names and
constraints here must match the migration DDL.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base for tlogg models."""


class Project(Base):
    """Project that hours are logged against.

    Attributes:
        id: Surrogate key assigned by the database
        name: Unique, non-empty display name
        description: Free-form description (may be empty)
        created_at: Creation timestamp
    """

    __tablename__ = "project"
    __table_args__ = (CheckConstraint("length(name) > 0", name="ck_project_name_not_empty"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    def __repr__(self) -> str:
        return f"Project(id={self.id!r}, name={self.name!r})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "created_at": self.created_at.isoformat() if self.created_at else "",
        }


class LogEntry(Base):
    """Hours spent on a project.

    Attributes:
        id: Surrogate key assigned by the database
        duration: Hours spent (always > 0)
        description: Short message describing the work
        project_id: Foreign key of the owning project
        project: The owning Project (loaded eagerly)
        created_at: Creation timestamp, used for date filtering
    """

    __tablename__ = "log_entry"
    __table_args__ = (CheckConstraint("duration > 0", name="ck_log_entry_duration_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    duration: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    project_id: Mapped[int] = mapped_column(
        ForeignKey("project.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, index=True
    )

    # Many-to-one only: deleting a Project must be decided by the database's
    # foreign key, so the ORM never touches child rows.
    project: Mapped[Project] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"LogEntry(id={self.id!r}, duration={self.duration!r}, project={self.project_name!r})"

    @property
    def project_name(self) -> Optional[str]:
        """Name of the owning project, if loaded."""
        return self.project.name if self.project is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": self.id,
            "date": self.created_at.strftime("%Y-%m-%d") if self.created_at else "",
            "project": self.project_name or "",
            "description": self.description or "",
            "hours": self.duration,
        }

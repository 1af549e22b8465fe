"""Tests for data models."""

from datetime import datetime

from tlogg.core.models import LogEntry, Project


class TestProject:
    """Test Project model."""

    def test_to_dict(self) -> None:
        """Test serialization to dictionary."""
        project = Project(
            id=3,
            name="work",
            description="day job",
            created_at=datetime(2026, 10, 1, 9, 30),
        )

        assert project.to_dict() == {
            "id": 3,
            "name": "work",
            "description": "day job",
            "created_at": "2026-10-01T09:30:00",
        }

    def test_repr(self) -> None:
        """Test repr names the project."""
        assert "work" in repr(Project(id=1, name="work"))


class TestLogEntry:
    """Test LogEntry model."""

    def test_project_name(self) -> None:
        """Test that project_name follows the related project."""
        entry = LogEntry(duration=1.5, description="task", project=Project(name="work"))
        assert entry.project_name == "work"

    def test_project_name_without_project(self) -> None:
        """Test project_name on an entry with no project attached."""
        entry = LogEntry(duration=1.5, description="task")
        assert entry.project_name is None

    def test_to_dict(self) -> None:
        """Test serialization to dictionary."""
        entry = LogEntry(
            id=7,
            duration=2.25,
            description="bugfix",
            project=Project(name="work"),
            created_at=datetime(2026, 10, 19, 14, 0),
        )

        assert entry.to_dict() == {
            "id": 7,
            "date": "2026-10-19",
            "project": "work",
            "description": "bugfix",
            "hours": 2.25,
        }

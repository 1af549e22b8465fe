"""Markdown report format."""

from collections import defaultdict
from datetime import datetime
from typing import Any, Optional, Sequence

from tlogg.core.models import LogEntry
from tlogg.export_import.base import Formatter


def _format_hours(hours: float, precision: int) -> str:
    return f"{hours:.{precision}f}"


def escape_cell(value: Any) -> str:
    """Make a value safe to put inside a Markdown table cell."""
    text = str(value)
    text = text.replace("\\", "\\\\").replace("|", "\\|")
    return " ".join(text.splitlines())


class MarkdownFormatter(Formatter):
    """Render entries as a human readable Markdown report."""

    def get_file_extension(self) -> str:
        """Get Markdown file extension.

        Returns:
            '.md'
        """
        return ".md"

    def render(self, entries: Sequence[LogEntry], **kwargs: Any) -> str:
        """Render entries as Markdown.

        Args:
            entries: Entries to render, in output order
            **kwargs: Additional options
                - title (str): Document title (default: "Time Log")
                - since (datetime): Start of the reported range, shown in the header
                - include_summary (bool): Include per-project totals (default: True)
                - hours_precision (int): Decimal places for hours (default: 2)

        Returns:
            Markdown formatted string
        """
        title = kwargs.get("title", "Time Log")
        since: Optional[datetime] = kwargs.get("since")
        include_summary = kwargs.get("include_summary", True)
        precision = kwargs.get("hours_precision", 2)

        lines = [f"# {title}", ""]

        if since is not None:
            lines.append(f"**From:** {since.strftime('%Y-%m-%d')}")
            lines.append("")

        if not entries:
            lines.append("_No entries._")
            return "\n".join(lines) + "\n"

        lines.extend(self._table(entries, precision))

        if include_summary:
            lines.append("")
            lines.extend(self._summary(entries, precision))

        return "\n".join(lines) + "\n"

    def _table(self, entries: Sequence[LogEntry], precision: int) -> list[str]:
        """Generate the entry table.

        Args:
            entries: List of entries
            precision: Decimal places for hours

        Returns:
            List of markdown lines
        """
        lines = [
            "| ID | Date | Project | Description | Hours |",
            "|---:|------|---------|-------------|------:|",
        ]
        for entry in entries:
            date = entry.created_at.strftime("%Y-%m-%d") if entry.created_at else ""
            lines.append(
                f"| {entry.id if entry.id is not None else ''} "
                f"| {date} "
                f"| {escape_cell(entry.project_name or '')} "
                f"| {escape_cell(entry.description or '')} "
                f"| {_format_hours(entry.duration, precision)} |"
            )
        return lines

    def _summary(self, entries: Sequence[LogEntry], precision: int) -> list[str]:
        """Generate summary section.

        Args:
            entries: List of entries
            precision: Decimal places for hours

        Returns:
            List of markdown lines
        """
        lines = ["## Summary", ""]

        project_time: dict[str, float] = defaultdict(float)
        for entry in entries:
            project_time[entry.project_name or "No Project"] += entry.duration

        for project, hours in sorted(project_time.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"- **{escape_cell(project)}:** {_format_hours(hours, precision)} hours")

        lines.append("")
        lines.append(f"**Total:** {_format_hours(sum(project_time.values()), precision)} hours")
        return lines


def to_markdown(entries: Sequence[LogEntry], **kwargs: Any) -> str:
    """Render entries as a Markdown report."""
    return MarkdownFormatter().render(entries, **kwargs)

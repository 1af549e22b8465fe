"""CSV report format."""

import csv
import io
from typing import Any, Sequence

from tlogg.core.models import LogEntry
from tlogg.export_import.base import Formatter

CSV_FIELDS = ["id", "date", "project", "description", "hours"]


class CSVFormatter(Formatter):
    """Render entries as comma-separated records with a header row.

    Records end in CRLF. Fields containing the delimiter, quotes, CR or LF
    are quoted by the csv module. Hours are written at full float precision
    so the output parses back to the same values.
    """

    def get_file_extension(self) -> str:
        """Get CSV file extension.

        Returns:
            '.csv'
        """
        return ".csv"

    def render(self, entries: Sequence[LogEntry], **kwargs: Any) -> str:
        """Render entries as CSV.

        Args:
            entries: Entries to render, in output order
            **kwargs: Additional options
                - delimiter (str): Field delimiter (default: ',')
        """
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=CSV_FIELDS,
            delimiter=kwargs.get("delimiter", ","),
        )
        writer.writeheader()
        for entry in entries:
            writer.writerow(entry.to_dict())
        return buffer.getvalue()


def to_csv(entries: Sequence[LogEntry]) -> str:
    """Render entries as CSV text."""
    return CSVFormatter().render(entries)

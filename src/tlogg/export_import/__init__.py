"""Report formats for logged time."""

from tlogg.export_import.base import Formatter
from tlogg.export_import.csv_format import CSVFormatter, to_csv
from tlogg.export_import.markdown_format import MarkdownFormatter, to_markdown

FORMATTERS: dict[str, type[Formatter]] = {
    "markdown": MarkdownFormatter,
    "csv": CSVFormatter,
}

__all__ = [
    "FORMATTERS",
    "CSVFormatter",
    "Formatter",
    "MarkdownFormatter",
    "to_csv",
    "to_markdown",
]

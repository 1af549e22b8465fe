"""Base class for report formats."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Sequence

from tlogg.core.errors import StorageError
from tlogg.core.models import LogEntry


class Formatter(ABC):
    """Base class for all report formats.

    Formatters are pure: render() turns entries into text in the order
    given and never reorders or filters them.
    """

    @abstractmethod
    def render(self, entries: Sequence[LogEntry], **kwargs: Any) -> str:
        """Render entries as text.

        Args:
            entries: Entries to render, in output order
            **kwargs: Format-specific options

        Returns:
            Rendered report
        """
        pass

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get the file extension for this format (e.g., '.md', '.csv').

        Returns:
            File extension including the dot
        """
        pass

    def export(self, entries: Sequence[LogEntry], output_path: Path, **kwargs: Any) -> Path:
        """Render entries and write them to a file.

        Args:
            entries: Entries to render
            output_path: Target file. The extension is added if missing
            **kwargs: Format-specific options

        Returns:
            Path that was written

        Raises:
            StorageError: If the file cannot be written
        """
        output_path = Path(output_path)
        if not output_path.suffix:
            output_path = output_path.with_suffix(self.get_file_extension())
        content = self.render(entries, **kwargs)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise StorageError(f"Cannot write {output_path}: {e}") from e

        return output_path

"""tlogg - Command-line logging of hours spent on projects."""

__version__ = "0.1.0"

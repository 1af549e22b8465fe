"""Command-line interface for tlogg."""

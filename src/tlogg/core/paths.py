"""Per-user data and configuration locations."""

import os
from pathlib import Path
from typing import Optional

APP_NAME = "tlogg"
DATABASE_FILENAME = "tlogg.sqlite"
CONFIG_FILENAME = "config.yml"


def get_data_dir() -> Path:
    """Get the per-user data directory for tlogg.

    Returns:
        ``%LOCALAPPDATA%/tlogg`` on Windows, ``$XDG_DATA_HOME/tlogg``
        (default ``~/.local/share/tlogg``) elsewhere
    """
    if os.name == "nt":
        app_data = os.environ.get("LOCALAPPDATA", os.path.expanduser("~/AppData/Local"))
        return Path(app_data) / APP_NAME

    xdg_data_home = os.environ.get("XDG_DATA_HOME") or os.path.expanduser("~/.local/share")
    return Path(xdg_data_home) / APP_NAME


def get_config_dir() -> Path:
    """Get the per-user configuration directory for tlogg."""
    if os.name == "nt":
        app_data = os.environ.get("APPDATA", os.path.expanduser("~/AppData/Roaming"))
        return Path(app_data) / APP_NAME

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return Path(xdg_config_home) / APP_NAME


def get_database_path(data_dir: Optional[Path] = None) -> Path:
    """Get the dataset file path.

    Args:
        data_dir: Custom data directory. Defaults to get_data_dir()

    Returns:
        Path to the SQLite dataset file (may not exist yet)
    """
    if data_dir is None:
        data_dir = get_data_dir()
    return Path(data_dir).expanduser() / DATABASE_FILENAME


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return get_config_dir() / CONFIG_FILENAME

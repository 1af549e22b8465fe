"""Configuration management for tlogg."""

import copy
from pathlib import Path
from typing import Any, NoReturn, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

from tlogg.core.errors import ConfigError
from tlogg.core.paths import get_config_path


class ConfigManager:
    """Manage application configuration."""

    DEFAULT_CONFIG = {
        "version": "1.0",
        "general": {
            "data_dir": None,
            "date_format": "%Y-%m-%d",
        },
        "storage": {
            "busy_timeout": 1.0,
            "lock_retry_delay": 0.25,
        },
        "display": {
            "hours_precision": 2,
        },
        "advanced": {
            "log_level": "WARNING",
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "general": {
                "type": "object",
                "properties": {
                    "data_dir": {"type": ["string", "null"]},
                    "date_format": {"type": "string"},
                },
            },
            "storage": {
                "type": "object",
                "properties": {
                    "busy_timeout": {"type": "number", "minimum": 0, "maximum": 60},
                    "lock_retry_delay": {"type": "number", "minimum": 0, "maximum": 10},
                },
            },
            "display": {
                "type": "object",
                "properties": {
                    "hours_precision": {"type": "integer", "minimum": 0, "maximum": 6},
                },
            },
            "advanced": {
                "type": "object",
                "properties": {
                    "log_level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR"],
                    },
                },
            },
        },
        "required": ["version"],
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to $XDG_CONFIG_HOME/tlogg/config.yml
        """
        self.config_path = Path(config_path) if config_path else get_config_path()
        self._config: dict[str, Any] = {}
        self._load_or_create()

    def _load_or_create(self) -> None:
        """Load existing config or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    loaded_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                self._replace_corrupted(f"unreadable YAML: {e}")
            if not isinstance(loaded_config, dict):
                self._replace_corrupted("top level is not a mapping")
            # Merge with defaults to ensure all keys exist
            self._config = self._merge_with_defaults(loaded_config)
            try:
                self.validate()
            except ConfigError as e:
                self._replace_corrupted(str(e))
        else:
            self._config = copy.deepcopy(self.DEFAULT_CONFIG)
            self.save()

    def _replace_corrupted(self, reason: str) -> NoReturn:
        """Back up an unusable config file and start over from defaults.

        Raises:
            ConfigError: Always, naming the backup location
        """
        backup_path = self.config_path.with_suffix(".yml.backup")
        self.config_path.replace(backup_path)
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()
        raise ConfigError(
            f"Config validation failed, backed up to {backup_path}. "
            f"Using defaults. Error: {reason}"
        )

    def _merge_with_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Merge config with defaults to ensure all keys exist.

        Args:
            config: User configuration

        Returns:
            Merged configuration with all default keys
        """
        result = copy.deepcopy(self.DEFAULT_CONFIG)
        self._deep_merge(result, config)
        return result

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> None:
        """Deep merge override into base dictionary (in-place)."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., 'storage.busy_timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get('display.hours_precision')
            2
            >>> config.get('nonexistent.key', 'default')
            'default'
        """
        keys = key.split(".")
        value: Any = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key: Configuration key in dot notation
            value: Value to set

        Raises:
            ConfigError: If configuration is invalid after setting. The
                previous configuration is kept in that case.
        """
        previous = copy.deepcopy(self._config)
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
        try:
            self.validate()
        except ConfigError:
            self._config = previous
            raise
        self.save()

    def validate(self) -> bool:
        """Validate configuration against schema.

        Returns:
            True if valid

        Raises:
            ConfigError: If configuration is invalid
        """
        try:
            validate(instance=self._config, schema=self.CONFIG_SCHEMA)
            return True
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e.message}")

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    def reset(self) -> None:
        """Reset to default configuration."""
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()

    def to_dict(self) -> dict[str, Any]:
        """Get full configuration as dictionary."""
        return copy.deepcopy(self._config)

    def get_all_keys(self, prefix: str = "") -> list[str]:
        """Get all configuration keys in dot notation.

        Args:
            prefix: Prefix for recursive traversal (internal use)

        Returns:
            List of all configuration keys
        """
        keys = []
        config = self._config if not prefix else self.get(prefix, {})

        if isinstance(config, dict):
            for key, value in config.items():
                full_key = f"{prefix}.{key}" if prefix else key
                if isinstance(value, dict):
                    keys.extend(self.get_all_keys(full_key))
                else:
                    keys.append(full_key)
        return keys

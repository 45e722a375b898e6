"""
Configuration management for noteferry.

This module handles loading and accessing configuration values from
noteferry.yaml. Values missing from the file fall back to built-in defaults,
so a partial file only needs the settings it changes.
"""

import copy
import yaml
from pathlib import Path
from typing import Any, Dict
import logging


DEFAULT_CONFIG: Dict[str, Any] = {
    "storage": {
        "root_dir": "./vault",
        "notes_dir": "notes",
        "trash_dir": "trash",
        "test_dir": "migration-test",
        "backups_dir": "backups",
        "file_extension": ".md"
    },
    "migration": {
        "include_trash": True,
        "create_backup": True,
        "overwrite_existing": False,
        "per_record_ms": 100,
        "test_max_records": 3
    },
    "validation": {
        "timestamp_tolerance_ms": 2000,
        "error_rate_threshold": 0.10,
        "warning_rate_threshold": 0.05
    },
    "backup": {
        "version": "1.0.0"
    },
    "database": {
        "filename": "noteferry.db"
    },
    "git": {
        "auto_commit": False,
        "author_name": "noteferry",
        "author_email": "noteferry@localhost"
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    },
    "paths": {
        "log_file": "noteferry.log"
    }
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay override onto a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Manages configuration loading and access for noteferry.
    """

    def __init__(self, config_path: str = "noteferry.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from the YAML file, on top of the defaults."""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}

            if not isinstance(loaded, dict):
                raise ValueError("top level of the configuration must be a mapping")

            self._config = _merge(DEFAULT_CONFIG, loaded)
            logging.info(f"Configuration loaded from {self.config_path}")

        except FileNotFoundError:
            logging.info(f"Configuration file not found: {self.config_path}, using defaults")
            self._config = copy.deepcopy(DEFAULT_CONFIG)
        except (OSError, yaml.YAMLError, ValueError) as e:
            logging.error(f"Failed to load configuration: {e}")
            self._config = copy.deepcopy(DEFAULT_CONFIG)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "migration.include_trash")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("storage.notes_dir")  # Returns "notes"
            config.get("validation.timestamp_tolerance_ms")  # Returns 2000
        """
        value = self._config

        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def root_directory(self) -> str:
        """Get the vault root directory."""
        return self.get("storage.root_dir", "./vault")

    @property
    def file_extension(self) -> str:
        """Get the document file extension."""
        return self.get("storage.file_extension", ".md")

    @property
    def database_filename(self) -> str:
        """Get database filename."""
        return self.get("database.filename", "noteferry.db")

    @property
    def log_filename(self) -> str:
        """Get log file name."""
        return self.get("paths.log_file", "noteferry.log")

    @property
    def timestamp_tolerance_ms(self) -> int:
        """Get the allowed timestamp drift for validation."""
        return self.get("validation.timestamp_tolerance_ms", 2000)

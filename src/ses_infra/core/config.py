"""Configuration management for SES event infrastructure provisioning.

This module handles YAML configuration loading, validation, and
environment variable override support, and renders the option map the
provisioning pipeline consumes.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import yaml

from .aws_client import DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


# Environment variable -> configuration key path
ENVIRONMENT_OVERRIDES = {
    "AWS_REGION": "aws.region",
    "AWS_ACCESS_KEY_ID": "aws.access_key_id",
    "AWS_SECRET_ACCESS_KEY": "aws.secret_access_key",
    "SES_INFRA_PROJECT_NAME": "project.name",
}

POSITIVE_INTEGER_FIELDS = (
    "queue.visibility_timeout",
    "queue.retention",
    "queue.max_receive_count",
    "queue.polling_interval_ms",
    "http.connect_timeout",
    "http.read_timeout",
)

STRING_FIELDS = (
    "project.name",
    "aws.access_key_id",
    "aws.secret_access_key",
)


class Configuration:
    """Configuration management with YAML loading and validation.

    This class loads configuration from a YAML file when one is present,
    applies environment variable overrides and validates numeric knobs.
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file.
                        If None, auto-detects config.yaml in current directory.

        Raises:
            ConfigurationError: When configuration file is invalid
        """
        self._config: Dict[str, Any] = {}
        self._config_path = self._resolve_config_path(config_path)
        if self._config_path is not None:
            self._load_configuration()
        self._apply_environment_overrides()
        self._validate_configuration()

    @property
    def config_path(self) -> Optional[Path]:
        """Path of the loaded configuration file, if any."""
        return self._config_path

    def _resolve_config_path(self, config_path: Optional[str]) -> Optional[Path]:
        """Resolve configuration file path.

        Args:
            config_path: Optional path to configuration file

        Returns:
            Resolved Path, or None when no file was given or auto-detected

        Raises:
            ConfigurationError: When an explicit configuration file is missing
        """
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {path}. "
                    "Please create a configuration file or specify a valid path."
                )
            return path

        for candidate in (Path("config.yaml"), Path("config/settings.yaml")):
            if candidate.exists():
                return candidate

        return None

    def _load_configuration(self) -> None:
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: When YAML file is invalid
        """
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {self._config_path}: {e}"
            )
        except IOError as e:
            raise ConfigurationError(
                f"Unable to read configuration file {self._config_path}: {e}"
            )

        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration file {self._config_path} must contain a mapping"
            )
        self._config = loaded

    def _validate_configuration(self) -> None:
        """Validate configuration value types.

        Raises:
            ConfigurationError: When a field has the wrong type
        """
        for section in ("project", "aws", "queue", "http"):
            if section in self._config and not isinstance(self._config[section], dict):
                raise ConfigurationError(f"Configuration section '{section}' must be a mapping")

        for key_path in POSITIVE_INTEGER_FIELDS:
            value = self.get(key_path)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"Field '{key_path}' must be a positive integer")

        for key_path in STRING_FIELDS:
            value = self.get(key_path)
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"Field '{key_path}' must be a string")

        region = self.get("aws.region")
        if region is not None and (not isinstance(region, str) or not region.strip()):
            raise ConfigurationError("Field 'aws.region' must be a non-empty string")

    def _apply_environment_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        for variable, key_path in ENVIRONMENT_OVERRIDES.items():
            if os.environ.get(variable):
                self._set_nested_value(key_path, os.environ[variable])

    def _set_nested_value(self, key_path: str, value: Any) -> None:
        """Set nested configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.region')
            value: Value to set
        """
        keys = key_path.split(".")
        current = self._config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def set(self, key_path: str, value: Any) -> None:
        """Override a configuration value, ignoring None.

        Args:
            key_path: Dot-separated key path
            value: Value to set; None leaves the current value untouched
        """
        if value is not None:
            self._set_nested_value(key_path, value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.region')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_timeouts(self) -> Tuple[int, int]:
        """Get HTTP connect and read timeouts.

        Returns:
            Tuple of (connect_timeout, read_timeout) in seconds
        """
        return (
            self.get("http.connect_timeout", DEFAULT_CONNECT_TIMEOUT),
            self.get("http.read_timeout", DEFAULT_READ_TIMEOUT),
        )

    def to_pipeline_options(self) -> Dict[str, Any]:
        """Render the option map consumed by the provisioning pipeline.

        Only keys present in the configuration are emitted so the
        pipeline's own defaults apply to everything else.

        Returns:
            Pipeline option dictionary
        """
        mapping = {
            "project_name": "project.name",
            "region": "aws.region",
            "access_key_id": "aws.access_key_id",
            "secret_access_key": "aws.secret_access_key",
            "queue_visibility_timeout": "queue.visibility_timeout",
            "queue_retention": "queue.retention",
            "max_receive_count": "queue.max_receive_count",
            "polling_interval_ms": "queue.polling_interval_ms",
        }

        options = {}
        for option, key_path in mapping.items():
            value = self.get(key_path)
            if value is not None:
                options[option] = value
        return options

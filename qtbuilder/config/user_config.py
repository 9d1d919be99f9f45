"""
User configuration management for QtBuilder.

This module is the settings store of the build engine. Settings come from:
1. Environment variables (highest precedence)
2. Command-line provided config file
3. Config file in current directory
4. User's XDG config directory
5. Default values (lowest precedence)

All reads happen at start-up; writes happen on user actions (path
selection, option toggles) and at shutdown.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from qtbuilder.config.models import UserConfigData
from qtbuilder.core.errors import ConfigError
from qtbuilder.utils.xdg import get_xdg_config_dir


logger = logging.getLogger(__name__)

ENV_PREFIX = "QTBUILDER_"


class UserConfig:
    """Manages user-specific configuration for QtBuilder using Pydantic Settings."""

    def __init__(self, cli_config_path: str | Path | None = None):
        """
        Initialize the user configuration handler.

        Args:
            cli_config_path: Optional config file path provided via CLI
        """
        self._config_sources: dict[str, str] = {}
        self._cli_config_path = cli_config_path
        self._main_config_path: Path | None = None
        self._config_paths = self._generate_config_paths(cli_config_path)
        self._load_config()

    @property
    def data(self) -> UserConfigData:
        return self._config

    @property
    def config_path(self) -> Path | None:
        return self._main_config_path

    def _generate_config_paths(self, cli_config_path: str | Path | None) -> list[Path]:
        """Generate a list of config paths to search in order of precedence."""
        config_paths = []

        if cli_config_path:
            config_paths.append(Path(cli_config_path).expanduser().resolve())

        config_paths.extend([Path.cwd() / "qtbuilder.yaml", Path.cwd() / ".qtbuilder.yml"])

        xdg_dir = get_xdg_config_dir()
        config_paths.extend([xdg_dir / "config.yml", xdg_dir / "config.yaml"])

        return config_paths

    def _load_config(self) -> None:
        """Load configuration from the first existing config file and the environment."""
        logger.debug("Config search paths: %s", [str(p) for p in self._config_paths])

        config_data: dict[str, Any] = {}
        found_path: Path | None = None
        for path in self._config_paths:
            if path.is_file():
                found_path = path
                config_data = self._read_yaml(path)
                break

        try:
            self._config = UserConfigData(**config_data)
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid configuration in {found_path}: {e}") from e

        if found_path:
            logger.debug("Loaded user configuration from %s", found_path)
            self._main_config_path = found_path
            for key in config_data:
                self._config_sources[key] = f"file:{found_path.name}"
        else:
            logger.info(
                "No user configuration files found. Using defaults with environment variables."
            )
            # A CLI supplied path is created on save, otherwise the XDG location
            self._main_config_path = (
                self._config_paths[0] if self._cli_config_path else self._config_paths[-1]
            )

        self._track_env_var_sources()

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping")
        return data

    def _track_env_var_sources(self) -> None:
        """Track which configuration values came from environment variables."""
        for env_name in os.environ:
            if not env_name.startswith(ENV_PREFIX):
                continue
            config_key = env_name[len(ENV_PREFIX) :].lower()
            if config_key in UserConfigData.model_fields:
                self._config_sources[config_key] = "environment"

    def save(self) -> None:
        """
        Save the current configuration to the main config file.
        Creates parent directories if they don't exist.
        """
        if not self._main_config_path:
            logger.warning("No config path set, can't save configuration.")
            return

        data = self._config.model_dump(mode="json", exclude_unset=True)
        try:
            self._main_config_path.parent.mkdir(parents=True, exist_ok=True)
            with self._main_config_path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=True)
        except OSError as e:
            raise ConfigError(
                f"Cannot write configuration file {self._main_config_path}: {e}"
            ) from e
        logger.debug("Saved user configuration to %s", self._main_config_path)

    def get_source(self, key: str) -> str:
        """
        Get the source of a configuration value.

        Returns:
            The source of the configuration value (environment, file:name, runtime, default)
        """
        return self._config_sources.get(key, "default")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve
            default: Value to return if the key doesn't exist
        """
        if key in UserConfigData.model_fields:
            return getattr(self._config, key)
        return default

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Raises:
            ValueError: If the key is unknown or the value is invalid
        """
        if key not in UserConfigData.model_fields:
            logger.warning("Ignoring unknown configuration key: %s", key)
            raise ValueError(f"Unknown configuration key: {key}")
        try:
            setattr(self._config, key, value)
        except PydanticValidationError as e:
            logger.warning("Invalid value for %s: %s", key, e)
            raise ValueError(f"Invalid value for {key}: {e}") from e
        self._config_sources[key] = "runtime"

    def reset_to_defaults(self) -> None:
        """Reset the configuration to default values."""
        self._config = UserConfigData()
        self._config_sources = {}

    def get_log_level_int(self) -> int:
        """Get the log level as an integer value for use with logging module."""
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return level_map.get(self._config.log_level.upper(), logging.INFO)


def create_user_config(cli_config_path: str | Path | None = None) -> UserConfig:
    """Factory function to create a UserConfig instance."""
    return UserConfig(cli_config_path=cli_config_path)

"""Configuration file loader.

Reads the YAML configuration with yaml.safe_load and validates it against
ExporterConfig. Every problem (unreadable file, YAML syntax, schema
violation, unusable data directory) is reported as ConfigError.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from ..core.exceptions import ConfigError
from .schema import ExporterConfig

_LOGGER = logging.getLogger(__name__)


def load_config(path: str | Path | None = None) -> ExporterConfig:
    """Load the exporter configuration.

    Args:
        path: YAML file path. None, or a path that does not exist, yields
            the default configuration.

    Returns:
        Validated ExporterConfig

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    if path is None:
        return ExporterConfig()

    config_path = Path(path)
    if not config_path.exists():
        _LOGGER.debug("Configuration file %s not found, using defaults", config_path)
        return ExporterConfig()

    _LOGGER.debug("Loading configuration from %s", config_path)

    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if raw_config is None:
        return ExporterConfig()
    if not isinstance(raw_config, dict):
        raise ConfigError(f"Configuration root must be a mapping in {config_path}")

    try:
        return ExporterConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def check_data_directory(data_directory: str | Path) -> Path:
    """Ensure the data directory exists and is writable.

    Raises:
        ConfigError: If it is missing, not a directory, or read-only
    """
    directory = Path(data_directory)
    if not directory.exists():
        raise ConfigError(f"Data directory {directory} does not exist")
    if not directory.is_dir():
        raise ConfigError(f"Data directory {directory} is not a directory")
    if not os.access(directory, os.W_OK):
        raise ConfigError(f"Data directory {directory} is not writable")
    return directory

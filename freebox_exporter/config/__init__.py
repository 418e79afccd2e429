"""Exporter configuration file.

Key functions:
    - load_config(): Load and validate the YAML configuration
    - check_data_directory(): Ensure the credential directory is usable
"""

from .loader import check_data_directory, load_config
from .schema import AuthSection, CoreConfig, ExporterConfig, LogConfig

__all__ = [
    "AuthSection",
    "CoreConfig",
    "ExporterConfig",
    "LogConfig",
    "check_data_directory",
    "load_config",
]

"""Pydantic schema of the exporter configuration file.

The file is optional YAML; every key has a default, so an empty file (or no
file at all) yields a working configuration:

    core:
      data_directory: /var/lib/freebox-exporter
      api_url: https://mafreebox.freebox.fr/api/
    auth:
      poll_interval: 5
      session_validity_minutes: 30
      request_timeout: 10
      max_attempts: 100
      device_name: exporter-host
    log:
      level: INFO

Schema Structure:
    ExporterConfig (root)
    ├── CoreConfig
    ├── AuthSection
    └── LogConfig
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..const import (
    DEFAULT_API_URL,
    DEFAULT_APP_ID,
    DEFAULT_APP_NAME,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SESSION_VALIDITY,
    DEFAULT_TIMEOUT,
    MAX_AUTHORIZATION_ATTEMPTS,
)
from ..core.auth.configs import AppIdentity, AuthConfig

# =============================================================================
# SECTIONS
# =============================================================================


class CoreConfig(BaseModel):
    """Where the box is and where local state lives."""

    model_config = ConfigDict(extra="forbid")

    data_directory: str = Field(
        default=".",
        description="Directory holding the application credential file",
    )
    api_url: str = Field(default=DEFAULT_API_URL, description="API root of the box")

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, value: str) -> str:
        """Require an absolute http(s) URL."""
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"api_url must start with http:// or https://, got {value!r}")
        return value


class AuthSection(BaseModel):
    """Authentication policies."""

    model_config = ConfigDict(extra="forbid")

    app_id: str = Field(default=DEFAULT_APP_ID)
    app_name: str = Field(default=DEFAULT_APP_NAME)
    device_name: str | None = Field(
        default=None,
        description="Device name shown on the box, defaults to the host name",
    )
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)
    max_attempts: int = Field(default=MAX_AUTHORIZATION_ATTEMPTS, ge=1)
    session_validity_minutes: float = Field(default=DEFAULT_SESSION_VALIDITY / 60, gt=0)
    request_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)


class LogConfig(BaseModel):
    """Process logging."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Accept standard level names, case-insensitively."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


# =============================================================================
# ROOT
# =============================================================================


class ExporterConfig(BaseModel):
    """Complete exporter configuration."""

    model_config = ConfigDict(extra="forbid")

    core: CoreConfig = Field(default_factory=CoreConfig)
    auth: AuthSection = Field(default_factory=AuthSection)
    log: LogConfig = Field(default_factory=LogConfig)

    def to_auth_config(self) -> AuthConfig:
        """Build the authentication policies."""
        return AuthConfig(
            timeout=self.auth.request_timeout,
            poll_interval=self.auth.poll_interval,
            max_attempts=self.auth.max_attempts,
            session_validity=self.auth.session_validity_minutes * 60,
        )

    def identity(self) -> AppIdentity:
        """Build the application identity."""
        if self.auth.device_name:
            return AppIdentity(
                app_id=self.auth.app_id,
                app_name=self.auth.app_name,
                device_name=self.auth.device_name,
            )
        return AppIdentity(app_id=self.auth.app_id, app_name=self.auth.app_name)

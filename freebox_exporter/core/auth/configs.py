"""Authentication configuration dataclasses.

AppIdentity is the static identity the box records when the application is
paired; it must stay identical between registration and every later login.
AuthConfig holds the local policies of the authentication layer. Both are
built once (from defaults or from the configuration file) and passed to the
components at construction.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field

from ...const import (
    DEFAULT_APP_ID,
    DEFAULT_APP_NAME,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SESSION_VALIDITY,
    DEFAULT_TIMEOUT,
    MAX_AUTHORIZATION_ATTEMPTS,
    VERSION,
)


@dataclass(frozen=True)
class AppIdentity:
    """Identity of the application as registered on the box."""

    app_id: str = DEFAULT_APP_ID
    app_name: str = DEFAULT_APP_NAME
    app_version: str = VERSION
    device_name: str = field(default_factory=socket.gethostname)


@dataclass(kw_only=True)
class AuthConfig:
    """Local policies of the authentication layer.

    session_validity is a client-side window: the box never reports the real
    lifetime of a session, so a fresh login is forced after this many
    seconds whatever the box would have accepted.
    """

    timeout: float = DEFAULT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_attempts: int = MAX_AUTHORIZATION_ATTEMPTS
    session_validity: float = DEFAULT_SESSION_VALIDITY

    def __post_init__(self) -> None:
        """Validate policy values."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.poll_interval < 0:
            raise ValueError("poll_interval cannot be negative")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.session_validity <= 0:
            raise ValueError("session_validity must be positive")

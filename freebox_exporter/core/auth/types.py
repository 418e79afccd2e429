"""Authentication enumerations."""

from __future__ import annotations

from enum import Enum


class AuthorizationStatus(str, Enum):
    """Pairing status reported by v4/login/authorize/{track_id}."""

    UNKNOWN = "unknown"
    """The app_token is invalid or has been revoked."""

    PENDING = "pending"
    """The user has not confirmed the authorization request yet."""

    TIMEOUT = "timeout"
    """The user did not confirm the authorization within the given time."""

    GRANTED = "granted"
    """The app_token is valid and can be used to open a session."""

    DENIED = "denied"
    """The user denied the authorization request."""


class PairingState(Enum):
    """Lifecycle of one PairingFlow.

    GRANTED is the only successful terminal state.
    """

    IDLE = "idle"
    PROMPTING = "prompting"
    POLLING = "polling"
    GRANTED = "granted"
    DENIED = "denied"
    TIMED_OUT = "timed_out"
    UNKNOWN = "unknown"
    ABORTED = "aborted"
    FAILED = "failed"
    """Polling stopped on a protocol or transport error."""

    @property
    def is_terminal(self) -> bool:
        """Return True once the flow cannot progress any further."""
        return self not in (PairingState.IDLE, PairingState.PROMPTING, PairingState.POLLING)


# Terminal failure statuses and the state each one leads to
FAILED_STATUS_STATES: dict[AuthorizationStatus, PairingState] = {
    AuthorizationStatus.TIMEOUT: PairingState.TIMED_OUT,
    AuthorizationStatus.UNKNOWN: PairingState.UNKNOWN,
    AuthorizationStatus.DENIED: PairingState.DENIED,
}

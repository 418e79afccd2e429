"""Exceptions for Freebox authentication.

Every failure raised by the pairing ritual, the login handshake and the
session client cache derives from FreeboxAuthError so callers can catch the
whole family at once. I/O errors from the credential file are not wrapped:
they stay OSError.
"""

from __future__ import annotations

from ..const import API_ERROR_CODES


class FreeboxAuthError(Exception):
    """Base class for authentication errors."""


class CredentialNotFoundError(FreeboxAuthError, LookupError):
    """No application credential is stored yet.

    Expected on first run, before the application was paired.
    """


class NotRegisteredError(FreeboxAuthError):
    """Error to indicate login cannot proceed without a credential.

    Raised before any HTTP call so the operator can be told to run the
    register command.
    """

    def __init__(self, message: str | None = None):
        """Initialize error with optional message."""
        super().__init__(message or "Application is not registered, please register it first")


class ProtocolError(FreeboxAuthError):
    """Error for malformed or unsuccessful API envelopes.

    Raised when the response is not valid JSON, is flagged success=false,
    carries no result, or holds a value this client does not understand.

    Attributes:
        endpoint: API path that produced the response
        error_code: Box error code (e.g., "invalid_token"), if any
        server_message: Box "msg" field, if any
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        error_code: str | None = None,
        server_message: str | None = None,
    ):
        """Initialize protocol error with context.

        Args:
            message: Human-readable error description
            endpoint: API path that produced the response
            error_code: Box error code
            server_message: Box "msg" field
        """
        super().__init__(message)
        self.endpoint = endpoint
        self.error_code = error_code
        self.server_message = server_message

    def __str__(self) -> str:
        """Format error with context."""
        parts = [super().__str__()]
        if self.endpoint:
            parts.append(f"endpoint={self.endpoint}")
        if self.server_message:
            parts.append(f"msg={self.server_message}")
        if self.error_code:
            description = API_ERROR_CODES.get(self.error_code)
            parts.append(f"error_code={self.error_code}" + (f" ({description})" if description else ""))
        return " | ".join(parts)


class AuthorizationError(FreeboxAuthError):
    """Error to indicate pairing ended without approval.

    Attributes:
        status: Terminal status reported by the box ("denied", "timeout",
            "unknown") or "aborted" when polling gave up locally
    """

    def __init__(self, status: str, message: str | None = None):
        """Initialize error with the terminal status."""
        super().__init__(message or f"Authorization has failed, reason: {status}")
        self.status = status


class AuthorizationAbortedError(AuthorizationError):
    """Pairing was abandoned before the box reached a terminal status.

    Attributes:
        attempts: Number of status checks issued before giving up
    """

    def __init__(self, reason: str, attempts: int):
        """Initialize error with reason and attempt count."""
        super().__init__("aborted", f"Authorization aborted, reason: {reason}")
        self.attempts = attempts


class RegistrationError(FreeboxAuthError):
    """Generic registration failure.

    The underlying AuthorizationError, ProtocolError or TransportError is
    chained as __cause__.
    """


class SessionExpiredError(FreeboxAuthError):
    """Error to indicate a session client was checked out past its window.

    Attributes:
        expired_at: Monotonic clock value at which the client expired, None
            when no client was ever created
    """

    def __init__(self, expired_at: float | None = None):
        """Initialize error with expiry instant."""
        message = "No session negotiated yet" if expired_at is None else "Session client has expired"
        super().__init__(message)
        self.expired_at = expired_at


class TransportError(FreeboxAuthError):
    """Error for network failures talking to the box.

    Raised for connection errors and timeouts. The aiohttp exception is
    chained as __cause__.

    Attributes:
        url: The URL that could not be reached
    """

    def __init__(self, message: str, url: str | None = None):
        """Initialize transport error with context."""
        super().__init__(message)
        self.url = url

    def __str__(self) -> str:
        """Format error with context."""
        parts = [super().__str__()]
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)


class ConfigError(Exception):
    """Error to indicate the configuration file cannot be used.

    Raised for unreadable or malformed YAML, schema violations and an
    unusable data directory.
    """

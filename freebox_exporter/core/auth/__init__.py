"""Authentication against the Freebox OS API.

Pairing happens once: the box issues an application credential after its
owner approves the request on the LCD screen. Every later login turns that
credential into a short-lived session token through a challenge-response
handshake.

Usage:
    from freebox_exporter.core.auth import Authenticator, FileCredentialStore

    store = FileCredentialStore.from_data_directory(data_directory)
    async with Authenticator(api_url, store) as auth:
        cache = await auth.login()
        client = await cache.client()
"""

from __future__ import annotations

from .authenticator import Authenticator, SessionDiagnostic
from .client_cache import SessionClientCache
from .configs import AppIdentity, AuthConfig
from .credential_store import CredentialStore, FileCredentialStore
from .pairing import PairingAttempt, PairingFlow
from .session import SessionNegotiator, SessionToken, compute_password
from .types import AuthorizationStatus, PairingState

__all__ = [
    # Facade
    "Authenticator",
    "SessionDiagnostic",
    # Configs
    "AppIdentity",
    "AuthConfig",
    # Credential storage
    "CredentialStore",
    "FileCredentialStore",
    # Pairing
    "PairingAttempt",
    "PairingFlow",
    # Session
    "SessionClientCache",
    "SessionNegotiator",
    "SessionToken",
    "compute_password",
    # Enums
    "AuthorizationStatus",
    "PairingState",
]

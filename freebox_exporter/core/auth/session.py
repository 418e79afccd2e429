"""Challenge-response login turning the application credential into a session token.

The handshake has three steps:
1. GET v4/login/ returns a one-time challenge
2. password = hex(HMAC-SHA1(key=app_token, msg=challenge))
3. POST v4/login/session with app_id and password returns the session token

The credential itself never leaves this module: only the HMAC of it goes on
the wire.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..exceptions import CredentialNotFoundError, NotRegisteredError, ProtocolError
from .configs import AppIdentity
from .models import ChallengeResult, SessionPayload, SessionResult

if TYPE_CHECKING:
    from ..transport import ApiTransport
    from .credential_store import CredentialStore

_LOGGER = logging.getLogger(__name__)

CHALLENGE_PATH = "v4/login/"
SESSION_PATH = "v4/login/session"


def compute_password(credential: str, challenge: str) -> str:
    """Compute the login password for a challenge.

    Args:
        credential: Application credential, used as HMAC key
        challenge: Challenge issued by the box

    Returns:
        Lowercase hex HMAC-SHA1 digest (40 characters)

    Raises:
        ValueError: If the credential is empty
    """
    if not credential:
        raise ValueError("Cannot compute a login password with an empty credential")
    return hmac.new(credential.encode("utf-8"), challenge.encode("utf-8"), hashlib.sha1).hexdigest()


@dataclass(frozen=True)
class SessionToken:
    """Session token issued by the box after a successful login."""

    value: str = field(repr=False)
    permissions: dict[str, bool] = field(default_factory=dict)

    def masked(self) -> str:
        """Return a form of the token safe to display."""
        if len(self.value) <= 8:
            return "***"
        return f"{self.value[:4]}***{self.value[-4:]}"


class SessionNegotiator:
    """Performs the full login handshake on every call.

    No token is cached here; SessionClientCache decides when a new session
    is needed.
    """

    def __init__(
        self,
        transport: ApiTransport,
        store: CredentialStore,
        identity: AppIdentity,
    ) -> None:
        """Initialize the negotiator.

        Args:
            transport: Unauthenticated transport bound to the API root
            store: Credential store read on every login
            identity: Application identity registered on the box
        """
        self._transport = transport
        self._store = store
        self._identity = identity

    @property
    def api_url(self) -> str:
        """API root the handshake runs against."""
        return self._transport.api_url

    async def get_challenge(self) -> str:
        """Fetch a fresh login challenge.

        Raises:
            TransportError: If the box cannot be reached
            ProtocolError: If the response is unsuccessful or empty
        """
        _LOGGER.debug("Fetching login challenge")
        result = await self._transport.get(CHALLENGE_PATH, ChallengeResult)
        if not result.challenge:
            raise ProtocolError("Login challenge was empty", endpoint=CHALLENGE_PATH)
        return result.challenge

    compute_password = staticmethod(compute_password)

    async def negotiate_session_token(self, password: str) -> SessionToken:
        """Exchange a computed password for a session token.

        Raises:
            TransportError: If the box cannot be reached
            ProtocolError: If the box rejects the password or returns no token
        """
        _LOGGER.debug("Negotiating session token")
        payload = SessionPayload(app_id=self._identity.app_id, password=password)

        try:
            result = await self._transport.post(SESSION_PATH, payload, SessionResult)
        except ProtocolError as err:
            _LOGGER.error("Failed to get session token: %s", err)
            raise

        if not result.session_token:
            raise ProtocolError("Cannot get session token, none returned", endpoint=SESSION_PATH)

        permissions = {name: bool(allowed) for name, allowed in result.permissions.items()}
        return SessionToken(value=result.session_token, permissions=permissions)

    async def _load_credential(self) -> str:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._store.get)
        except CredentialNotFoundError as err:
            _LOGGER.error("No application credential found, did you register the application? See register command")
            raise NotRegisteredError() from err

    async def login(self) -> SessionToken:
        """Run the complete challenge-response handshake.

        Any failing step aborts the whole login; nothing is retried here.

        Raises:
            NotRegisteredError: If no credential is stored (no HTTP call made)
            TransportError: If the box cannot be reached
            ProtocolError: If any step returns an invalid response
        """
        _LOGGER.debug("Logging in")
        credential = await self._load_credential()

        challenge = await self.get_challenge()
        _LOGGER.debug("Computing session password")
        password = compute_password(credential, challenge)
        token = await self.negotiate_session_token(password)

        granted = sorted(name for name, allowed in token.permissions.items() if allowed)
        _LOGGER.info("Session opened on %s (permissions: %s)", self.api_url, ", ".join(granted) or "none")
        return token

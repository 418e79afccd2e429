"""Authentication entry point.

Authenticator wires one transport, one credential store and one application
identity into the three authentication components, and is what the command
line (and any exporter built on top of it) talks to:

    store = FileCredentialStore.from_data_directory("/var/lib/freebox")
    async with Authenticator(DEFAULT_API_URL, store) as auth:
        if not await auth.is_registered():
            await auth.register(poll_interval=5)
        cache = await auth.login()
        client = await cache.client()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import CredentialNotFoundError
from ..log_buffer import get_log_entries
from ..transport import ApiTransport
from .client_cache import SessionClientCache
from .configs import AppIdentity, AuthConfig
from .credential_store import CredentialStore
from .pairing import PairingAttempt, PairingFlow
from .session import SessionNegotiator

_LOGGER = logging.getLogger(__name__)


@dataclass
class SessionDiagnostic:
    """Outcome of a diagnostic login.

    token holds the masked session token unless the diagnostic was run with
    show_token=True.
    """

    api_url: str
    app_id: str
    device_name: str
    token: str = field(repr=False)
    permissions: dict[str, bool]
    validity_seconds: float
    logs: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "api_url": self.api_url,
            "app_id": self.app_id,
            "device_name": self.device_name,
            "session_token": self.token,
            "permissions": self.permissions,
            "validity_seconds": self.validity_seconds,
            "logs": self.logs,
        }


class Authenticator:
    """Facade over pairing, login and the session client cache."""

    def __init__(
        self,
        api_url: str,
        store: CredentialStore,
        identity: AppIdentity | None = None,
        config: AuthConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the authenticator.

        Args:
            api_url: API root of the box
            store: Credential store shared by pairing and login
            identity: Application identity, defaults to AppIdentity()
            config: Local authentication policies, defaults to AuthConfig()
            clock: Monotonic time source handed to session caches
        """
        self.store = store
        self.identity = identity or AppIdentity()
        self.config = config or AuthConfig()
        self._clock = clock

        self.transport = ApiTransport(api_url, timeout=self.config.timeout)
        self.pairing = PairingFlow(self.transport, store, self.identity, max_attempts=self.config.max_attempts)
        self.negotiator = SessionNegotiator(self.transport, store, self.identity)

    @property
    def api_url(self) -> str:
        """API root of the box."""
        return self.transport.api_url

    async def is_registered(self) -> bool:
        """Return True when a credential is stored."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.store.get)
        except CredentialNotFoundError:
            return False
        return True

    async def register(
        self,
        poll_interval: float | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> PairingAttempt:
        """Pair the application with the box.

        Args:
            poll_interval: Seconds between status checks, defaults to config
            stop_event: Optional event aborting the poll when set

        Raises:
            TransportError: If the pairing request cannot be sent
            ProtocolError: If the pairing request is rejected
            RegistrationError: If the authorization was not granted
        """
        if poll_interval is None:
            poll_interval = self.config.poll_interval
        return await self.pairing.register(poll_interval, stop_event)

    async def login(self) -> SessionClientCache:
        """Open a session and return a cache holding its client.

        The returned cache is owned by the caller, who must close it.

        Raises:
            NotRegisteredError: If no credential is stored
            TransportError: If the box cannot be reached
            ProtocolError: If the login handshake fails
        """
        cache = SessionClientCache(
            self.negotiator,
            validity=self.config.session_validity,
            timeout=self.config.timeout,
            clock=self._clock,
        )
        await cache.create()
        return cache

    async def diagnostic(self, show_token: bool = False) -> SessionDiagnostic:
        """Log in once and report on the resulting session.

        Args:
            show_token: Report the full session token instead of a masked one

        Raises:
            NotRegisteredError: If no credential is stored
            TransportError: If the box cannot be reached
            ProtocolError: If the login handshake fails
        """
        async with await self.login() as cache:
            token = cache.session_token
            assert token is not None
            if show_token:
                _LOGGER.warning("Session token will be displayed in clear, do not share this output")

            return SessionDiagnostic(
                api_url=cache.api_url,
                app_id=self.identity.app_id,
                device_name=self.identity.device_name,
                token=token.value if show_token else token.masked(),
                permissions=cache.permissions,
                validity_seconds=cache.validity,
                logs=get_log_entries(),
            )

    async def close(self) -> None:
        """Close the unauthenticated transport session."""
        await self.transport.close()

    async def __aenter__(self) -> Authenticator:
        """Enter async context."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close on exit."""
        await self.close()

"""Expiring cache of the authenticated HTTP client.

SessionClientCache holds at most one aiohttp session pre-loaded with the
X-Fbx-App-Auth header. The client is valid for a fixed window measured from
its creation; past that window get() refuses to hand it out and a new login
is required. The window is a local policy: it bounds how long a possibly
revoked token keeps being reused, whatever the box itself would accept.

Usage:
    cache = await authenticator.login()

    # Caller pattern, renewing transparently on expiry:
    client = await cache.client()
    async with client.get(f"{cache.api_url}v4/system/") as response:
        ...

    # Or explicitly:
    try:
        client = cache.get()
    except SessionExpiredError:
        client = await cache.create()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from ...const import AUTH_HEADER, DEFAULT_SESSION_VALIDITY, DEFAULT_TIMEOUT
from ..exceptions import SessionExpiredError
from ..http_client import create_client_session

if TYPE_CHECKING:
    import aiohttp

    from .session import SessionNegotiator, SessionToken

_LOGGER = logging.getLogger(__name__)


class SessionClientCache:
    """One authenticated client plus its expiry instant.

    Renewal replaces the client rather than mutating it: the previous
    session is closed once the new one is in place. Creation is serialized
    by an asyncio.Lock so concurrent callers sharing a cache never race two
    logins against each other.
    """

    def __init__(
        self,
        negotiator: SessionNegotiator,
        validity: float = DEFAULT_SESSION_VALIDITY,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            negotiator: Performs the login on every (re)creation
            validity: Seconds a client stays valid after creation
            timeout: Total timeout per request of the created clients
            clock: Monotonic time source, in seconds
        """
        self._negotiator = negotiator
        self.validity = validity
        self._timeout = timeout
        self._clock = clock
        self._lock = asyncio.Lock()
        self._client: aiohttp.ClientSession | None = None
        self._token: SessionToken | None = None
        self._created_at: float | None = None
        self._expires_at: float | None = None

    @property
    def api_url(self) -> str:
        """API root the session was opened on."""
        return self._negotiator.api_url

    @property
    def expires_at(self) -> float | None:
        """Clock value at which the held client expires."""
        return self._expires_at

    @property
    def remaining(self) -> float:
        """Seconds left before expiry (0 when expired or empty)."""
        if self._expires_at is None:
            return 0.0
        return max(0.0, self._expires_at - self._clock())

    @property
    def is_expired(self) -> bool:
        """Return True when get() would raise SessionExpiredError."""
        return (
            self._client is None
            or self._client.closed
            or self._expires_at is None
            or self._clock() >= self._expires_at
        )

    @property
    def session_token(self) -> SessionToken | None:
        """Token of the held client, if any."""
        return self._token

    @property
    def permissions(self) -> dict[str, bool]:
        """Permissions granted to the current session."""
        return dict(self._token.permissions) if self._token else {}

    def get(self) -> aiohttp.ClientSession:
        """Return the held client while it is still valid.

        Raises:
            SessionExpiredError: If no client exists or its window has elapsed
        """
        if self.is_expired:
            raise SessionExpiredError(self._expires_at)
        assert self._client is not None
        return self._client

    async def create(self) -> aiohttp.ClientSession:
        """Log in and replace the held client with a fresh one.

        Raises:
            NotRegisteredError: If no credential is stored
            TransportError: If the box cannot be reached
            ProtocolError: If the login handshake fails
        """
        async with self._lock:
            return await self._create_locked()

    async def client(self) -> aiohttp.ClientSession:
        """Return a valid client, logging in again if the held one expired."""
        try:
            return self.get()
        except SessionExpiredError:
            pass

        async with self._lock:
            # Another caller may have renewed while we waited for the lock
            if not self.is_expired:
                assert self._client is not None
                return self._client
            _LOGGER.debug("Session client expired, negotiating a new session")
            return await self._create_locked()

    async def _create_locked(self) -> aiohttp.ClientSession:
        token = await self._negotiator.login()
        client = await create_client_session(headers={AUTH_HEADER: token.value}, timeout=self._timeout)

        previous = self._client
        self._client = client
        self._token = token
        self._created_at = self._clock()
        self._expires_at = self._created_at + self.validity
        _LOGGER.debug("Session client created, valid for %ss", self.validity)

        if previous is not None and not previous.closed:
            await previous.close()
        return client

    async def close(self) -> None:
        """Close the held client; get() raises SessionExpiredError afterwards."""
        async with self._lock:
            if self._client is not None and not self._client.closed:
                await self._client.close()
            self._client = None
            self._token = None

    async def __aenter__(self) -> SessionClientCache:
        """Enter async context."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close the held client on exit."""
        await self.close()

"""HTTP client factory for the Freebox API.

The Freebox serves its API over HTTPS with a certificate issued by its own
private CA, so every client built here skips certificate verification.

Security note: This is acceptable for a device reached on the local LAN.
Not recommended for public internet.

Every client carries an explicit total timeout so that a network partition
cannot leave the login handshake or the pairing poll hanging forever.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Mapping

import aiohttp

from ..const import DEFAULT_TIMEOUT, VERIFY_SSL

_LOGGER = logging.getLogger(__name__)


async def create_ssl_context(verify_ssl: bool = VERIFY_SSL) -> ssl.SSLContext:
    """Create the SSL context used to reach the box.

    ssl.create_default_context() loads system certs from disk (blocking I/O),
    so it runs in the default executor.

    Args:
        verify_ssl: Keep certificate and hostname verification enabled

    Returns:
        Configured SSL context
    """
    loop = asyncio.get_running_loop()
    context = await loop.run_in_executor(None, ssl.create_default_context)
    if not verify_ssl:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


async def create_client_session(
    headers: Mapping[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    ssl_context: ssl.SSLContext | None = None,
) -> aiohttp.ClientSession:
    """Create an aiohttp session configured for the box.

    Must be called from a running event loop. The caller owns the returned
    session and is responsible for closing it.

    Args:
        headers: Default headers sent with every request (e.g., auth header)
        timeout: Total timeout per request, in seconds
        ssl_context: Pre-created SSL context (optional)

    Returns:
        New aiohttp.ClientSession
    """
    if ssl_context is None:
        ssl_context = await create_ssl_context()
        _LOGGER.debug(
            "SSL certificate verification is disabled for this Freebox connection. "
            "The box uses a certificate signed by its own CA."
        )

    return aiohttp.ClientSession(
        headers=dict(headers) if headers else None,
        timeout=aiohttp.ClientTimeout(total=timeout),
        connector=aiohttp.TCPConnector(ssl=ssl_context),
    )

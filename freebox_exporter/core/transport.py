"""Freebox API transport: envelope parsing and JSON requests.

Every API response is wrapped in the same envelope:

    {"success": true, "result": {...}}
    {"success": false, "msg": "...", "error_code": "invalid_token", "uid": "..."}

success=false or a missing result is a failure whatever the HTTP status,
because the box answers most errors with a 4xx status and a well-formed
envelope. Bodies are never logged: login responses carry secrets.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ConfigDict, ValidationError

from ..const import DEFAULT_TIMEOUT
from .exceptions import ProtocolError, TransportError
from .http_client import create_client_session

_LOGGER = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class ApiEnvelope(BaseModel):
    """Common wrapper of every API response."""

    model_config = ConfigDict(extra="ignore")

    msg: str | None = None
    success: bool | None = None
    uid: str | None = None
    error_code: str | None = None
    result: Any = None


def parse_envelope(body: str | bytes, result_model: type[ResultT], endpoint: str | None = None) -> ResultT:
    """Unwrap an API response body into its typed result.

    Args:
        body: Raw response body; invalid UTF-8 is reported as malformed
        result_model: Pydantic model of the "result" payload
        endpoint: API path, for error context

    Returns:
        Validated result payload

    Raises:
        ProtocolError: Body is not a valid envelope, success is not true,
            result is missing, or result does not match result_model
    """
    try:
        envelope = ApiEnvelope.model_validate_json(body)
    except ValidationError as err:
        raise ProtocolError("Malformed response from box", endpoint=endpoint) from err

    if not envelope.success:
        raise ProtocolError(
            "Response was not success",
            endpoint=endpoint,
            error_code=envelope.error_code,
            server_message=envelope.msg,
        )

    if envelope.result is None:
        raise ProtocolError("Response was empty", endpoint=endpoint)

    try:
        return result_model.model_validate(envelope.result)
    except ValidationError as err:
        raise ProtocolError(
            f"Unexpected result payload, expected {result_model.__name__}",
            endpoint=endpoint,
        ) from err


class ApiTransport:
    """JSON request helper bound to one API root.

    By default the transport lazily opens its own unauthenticated session and
    closes it in close(). An existing session (e.g., an authenticated client
    handed out by SessionClientCache) can be injected instead; it is then
    left open.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            api_url: API root, e.g. "https://mafreebox.freebox.fr/api/"
            timeout: Total timeout per request, in seconds
            session: Existing session to use instead of an owned one
        """
        self.api_url = api_url if api_url.endswith("/") else f"{api_url}/"
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session

        async with self._session_lock:
            # Concurrent first requests share the session opened by the first one
            if self._session is None or self._session.closed:
                self._session = await create_client_session(timeout=self.timeout)
                self._owns_session = True
            return self._session

    async def get(self, path: str, result_model: type[ResultT]) -> ResultT:
        """GET an API path and return its typed result."""
        return await self.request("GET", path, result_model)

    async def post(self, path: str, payload: BaseModel, result_model: type[ResultT]) -> ResultT:
        """POST a JSON payload to an API path and return its typed result."""
        return await self.request("POST", path, result_model, payload=payload)

    async def request(
        self,
        method: str,
        path: str,
        result_model: type[ResultT],
        payload: BaseModel | None = None,
    ) -> ResultT:
        """Send a request and unwrap the response envelope.

        Args:
            method: HTTP method
            path: Path relative to the API root (e.g., "v4/login/")
            result_model: Pydantic model of the "result" payload
            payload: Optional JSON body

        Returns:
            Validated result payload

        Raises:
            TransportError: Connection failure or timeout
            ProtocolError: Invalid or unsuccessful envelope
        """
        url = f"{self.api_url}{path}"
        session = await self._get_session()
        json_body = payload.model_dump() if payload is not None else None

        try:
            async with session.request(method, url, json=json_body) as response:
                status = response.status
                body = await response.read()
        except TimeoutError as err:
            raise TransportError(f"{method} {path} timed out after {self.timeout}s", url=url) from err
        except aiohttp.ClientError as err:
            raise TransportError(f"{method} {path} failed: {err}", url=url) from err

        _LOGGER.debug("%s %s -> HTTP %s (%d bytes)", method, path, status, len(body))
        return parse_envelope(body, result_model, endpoint=path)

    async def close(self) -> None:
        """Close the owned session, if one was opened."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

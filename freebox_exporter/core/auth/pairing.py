"""One-time pairing of the application with the box.

The box only grants an application credential after its owner confirms the
request on the Freebox LCD screen, so the only way to learn the outcome is to
poll the request's track id. The poll is bounded: if nobody ever answers,
registration gives up after a fixed number of attempts.

Lifecycle:
    1. prompt() - POST v4/login/authorize, receive app_token and track_id
    2. persist app_token through the CredentialStore
    3. monitor_authorization() - poll v4/login/authorize/{track_id}
       until granted, a terminal failure, or the attempt budget runs out
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ...const import MAX_AUTHORIZATION_ATTEMPTS
from ..exceptions import (
    AuthorizationAbortedError,
    AuthorizationError,
    FreeboxAuthError,
    ProtocolError,
    RegistrationError,
)
from .configs import AppIdentity
from .models import AuthorizationResult, PromptPayload, PromptResult
from .types import FAILED_STATUS_STATES, AuthorizationStatus, PairingState

if TYPE_CHECKING:
    from ..transport import ApiTransport
    from .credential_store import CredentialStore

_LOGGER = logging.getLogger(__name__)

AUTHORIZE_PATH = "v4/login/authorize"


@dataclass
class PairingAttempt:
    """One in-flight registration request.

    Attributes:
        track_id: Identifier used to poll the request status
        credential: Application credential issued by the box
        persisted: Whether the credential reached the CredentialStore
    """

    track_id: int
    credential: str = field(repr=False)
    persisted: bool = False


class PairingFlow:
    """Drives the registration ritual as a small state machine.

    States: IDLE -> PROMPTING -> POLLING -> GRANTED | DENIED | TIMED_OUT |
    UNKNOWN | ABORTED | FAILED. GRANTED is the only successful outcome.
    """

    def __init__(
        self,
        transport: ApiTransport,
        store: CredentialStore,
        identity: AppIdentity,
        max_attempts: int = MAX_AUTHORIZATION_ATTEMPTS,
    ) -> None:
        """Initialize the pairing flow.

        Args:
            transport: Unauthenticated transport bound to the API root
            store: Where the issued credential is persisted
            identity: Application identity shown on the box
            max_attempts: Status checks before giving up
        """
        self._transport = transport
        self._store = store
        self._identity = identity
        self.max_attempts = max_attempts
        self.state = PairingState.IDLE
        self._monitored_track_ids: set[int] = set()

    async def prompt(self) -> PairingAttempt:
        """Ask the box for a new application credential.

        Returns:
            PairingAttempt holding the credential and its track id

        Raises:
            TransportError: If the box cannot be reached
            ProtocolError: If the response is unsuccessful or empty
        """
        _LOGGER.debug("Prompting for registration")
        self.state = PairingState.PROMPTING

        payload = PromptPayload(
            app_id=self._identity.app_id,
            app_name=self._identity.app_name,
            app_version=self._identity.app_version,
            device_name=self._identity.device_name,
        )
        try:
            result = await self._transport.post(AUTHORIZE_PATH, payload, PromptResult)
        except FreeboxAuthError:
            self.state = PairingState.FAILED
            raise

        return PairingAttempt(track_id=result.track_id, credential=result.app_token)

    async def _wait(self, poll_interval: float, stop_event: asyncio.Event | None) -> bool:
        """Sleep between two status checks.

        Returns:
            True if stop_event was set during the wait
        """
        if stop_event is None:
            await asyncio.sleep(poll_interval)
            return False
        if stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=poll_interval)
        except TimeoutError:
            return False
        return True

    async def _get_authorization_status(self, track_id: int) -> str:
        _LOGGER.debug("Checking authorization status")
        result = await self._transport.get(f"{AUTHORIZE_PATH}/{track_id}", AuthorizationResult)
        return result.status

    async def monitor_authorization(
        self,
        track_id: int,
        poll_interval: float,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Poll a pairing request until the owner answers.

        Waits poll_interval seconds before each status check, for at most
        max_attempts checks. The wait is an asyncio delay: cancelling the task
        or setting stop_event ends polling at once.

        Args:
            track_id: Track id returned by prompt()
            poll_interval: Seconds to wait before each status check
            stop_event: Optional event aborting the poll when set

        Raises:
            ValueError: If this track id was already monitored
            AuthorizationError: On "timeout", "unknown" or "denied"
            AuthorizationAbortedError: When attempts run out or stop_event is set
            ProtocolError: On an unexpected status or invalid response
            TransportError: If the box cannot be reached
        """
        if track_id in self._monitored_track_ids:
            raise ValueError(f"Track id {track_id} was already monitored")
        self._monitored_track_ids.add(track_id)

        _LOGGER.debug("Monitoring registration prompt")
        _LOGGER.info("Requested authorization, please go to the Freebox and check LCD screen instructions")
        self.state = PairingState.POLLING

        for attempt in range(1, self.max_attempts + 1):
            try:
                stopped = await self._wait(poll_interval, stop_event)
            except asyncio.CancelledError:
                self.state = PairingState.ABORTED
                raise
            if stopped:
                self.state = PairingState.ABORTED
                raise AuthorizationAbortedError("cancelled", attempts=attempt - 1)

            try:
                status = await self._get_authorization_status(track_id)
            except FreeboxAuthError:
                self.state = PairingState.FAILED
                raise

            try:
                parsed = AuthorizationStatus(status)
            except ValueError:
                self.state = PairingState.FAILED
                raise ProtocolError(
                    f"Incorrect response from server, unexpected status {status!r}",
                    endpoint=f"{AUTHORIZE_PATH}/{track_id}",
                ) from None

            if parsed is AuthorizationStatus.GRANTED:
                _LOGGER.debug("Authorization granted after %d attempt(s)", attempt)
                self.state = PairingState.GRANTED
                return

            if parsed is AuthorizationStatus.PENDING:
                continue

            self.state = FAILED_STATUS_STATES[parsed]
            raise AuthorizationError(parsed.value)

        self.state = PairingState.ABORTED
        raise AuthorizationAbortedError("too many attempts", attempts=self.max_attempts)

    async def _persist(self, attempt: PairingAttempt) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._store.store, attempt.credential)
        except (OSError, ValueError) as err:
            _LOGGER.warning(
                "Storing application credential failed (%s), registration continues; "
                "the credential must be saved manually",
                err,
            )
            return
        attempt.persisted = True

    async def register(self, poll_interval: float, stop_event: asyncio.Event | None = None) -> PairingAttempt:
        """Run the complete pairing ritual.

        A failure to persist the credential does not abort registration: the
        box already issued it, and the returned attempt (persisted=False)
        still holds it for the caller to hand to the operator.

        Args:
            poll_interval: Seconds to wait before each status check
            stop_event: Optional event aborting the poll when set

        Returns:
            The granted PairingAttempt

        Raises:
            TransportError: If the pairing request cannot be sent
            ProtocolError: If the pairing request is rejected
            RegistrationError: If the authorization was not granted
        """
        attempt = await self.prompt()
        await self._persist(attempt)

        try:
            await self.monitor_authorization(attempt.track_id, poll_interval, stop_event)
        except FreeboxAuthError as err:
            _LOGGER.error("Authorization monitoring failed: %s", err)
            raise RegistrationError("Failed to register application") from err

        _LOGGER.info("Successfully registered application")
        return attempt

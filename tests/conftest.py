"""Pytest configuration and fixtures for freebox_exporter tests."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from freebox_exporter.const import AUTH_HEADER
from freebox_exporter.core.auth.configs import AppIdentity
from freebox_exporter.core.auth.credential_store import CredentialStore
from freebox_exporter.core.exceptions import CredentialNotFoundError
from freebox_exporter.core.transport import ApiTransport

# Values taken from the Freebox OS API documentation examples
APP_TOKEN = "dyNYgfK0Ya6FWGqq83sBHa7TwzWo+pg4fDFUJHShcjVYzTfaRrZzm93p7OTAfH/0"
CHALLENGE = "VzhbtpR4r8CLaJle2QgJBEkyd8JPb0zL"
SESSION_TOKEN = "35JYdQSvkcBYK84IFMU7H86clfhS75OzwlQrKlQN1gBchDd62RGzDpgC7YB9jB2"
TRACK_ID = 42


class StubCredentialStore(CredentialStore):
    """In-memory credential store for tests."""

    def __init__(self, credential: str | None = None, fail_on_store: bool = False) -> None:
        self.credential = credential
        self.fail_on_store = fail_on_store
        self.store_calls = 0
        self.get_calls = 0

    def store(self, credential: str) -> None:
        self.store_calls += 1
        if self.fail_on_store:
            raise OSError("Read-only file system")
        credential = credential.strip()
        if not credential:
            raise ValueError("Refusing to store an empty credential")
        self.credential = credential

    def get(self) -> str:
        self.get_calls += 1
        if not self.credential:
            raise CredentialNotFoundError("No credential stored")
        return self.credential


def envelope(result: Any = None, success: bool = True, **extra: Any) -> str:
    """Build an API response body."""
    body: dict[str, Any] = {"success": success, **extra}
    if result is not None:
        body["result"] = result
    return json.dumps(body)


class FakeFreebox:
    """In-process stand-in for the login API of a Freebox.

    Attributes:
        statuses: Authorization statuses returned by successive polls; the
            last one repeats once the list is exhausted
        overrides: (method, path) -> (http status, body) replacing a route
        requests: (method, path) of every request received
    """

    def __init__(self) -> None:
        self.api_url = ""
        self.app_token = APP_TOKEN
        self.track_id = TRACK_ID
        self.challenge = CHALLENGE
        self.session_token = SESSION_TOKEN
        self.permissions = {"settings": False, "contacts": False, "explorer": True, "downloader": True}
        self.statuses: list[str] = ["granted"]
        self.overrides: dict[tuple[str, str], tuple[int, str | bytes]] = {}
        self.requests: list[tuple[str, str]] = []
        self.prompt_bodies: list[dict] = []
        self.session_bodies: list[dict] = []

    @property
    def poll_count(self) -> int:
        """Number of authorization status checks received."""
        prefix = "/api/v4/login/authorize/"
        return sum(1 for method, path in self.requests if method == "GET" and path.startswith(prefix))

    @property
    def login_count(self) -> int:
        """Number of session requests received."""
        return sum(1 for method, path in self.requests if path == "/api/v4/login/session")

    def expected_password(self) -> str:
        """Password the box accepts for the current challenge."""
        return hmac.new(self.app_token.encode(), self.challenge.encode(), hashlib.sha1).hexdigest()

    def make_app(self) -> web.Application:
        """Build the aiohttp application."""

        @web.middleware
        async def record(request: web.Request, handler):
            self.requests.append((request.method, request.path))
            override = self.overrides.get((request.method, request.path))
            if override is not None:
                status, body = override
                if isinstance(body, bytes):
                    return web.Response(status=status, body=body, content_type="application/json", charset="utf-8")
                return web.Response(status=status, text=body, content_type="application/json")
            return await handler(request)

        app = web.Application(middlewares=[record])
        app.router.add_post("/api/v4/login/authorize", self._prompt)
        app.router.add_get("/api/v4/login/authorize/{track_id}", self._poll)
        app.router.add_get("/api/v4/login/", self._challenge)
        app.router.add_post("/api/v4/login/session", self._session)
        app.router.add_get("/api/v4/system/", self._system)
        return app

    def _json(self, body: str, status: int = 200) -> web.Response:
        return web.Response(status=status, text=body, content_type="application/json")

    async def _prompt(self, request: web.Request) -> web.Response:
        self.prompt_bodies.append(await request.json())
        return self._json(envelope({"app_token": self.app_token, "track_id": self.track_id}))

    async def _poll(self, request: web.Request) -> web.Response:
        if int(request.match_info["track_id"]) != self.track_id:
            return self._json(envelope(success=False, msg="Invalid track id", error_code="invalid_request"), 400)
        index = min(self.poll_count - 1, len(self.statuses) - 1)
        return self._json(envelope({"status": self.statuses[index], "challenge": self.challenge}))

    async def _challenge(self, request: web.Request) -> web.Response:
        return self._json(envelope({"logged_in": False, "challenge": self.challenge}))

    async def _session(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.session_bodies.append(body)
        if body.get("password") != self.expected_password():
            return self._json(
                envelope(
                    success=False,
                    msg="Erreur d'authentification de l'application",
                    error_code="invalid_token",
                    uid="23b86ec8091013d668829fe12791fdab",
                ),
                403,
            )
        return self._json(
            envelope(
                {
                    "session_token": self.session_token,
                    "challenge": self.challenge,
                    "permissions": self.permissions,
                }
            )
        )

    async def _system(self, request: web.Request) -> web.Response:
        if request.headers.get(AUTH_HEADER) != self.session_token:
            return self._json(envelope(success=False, msg="Authentication required", error_code="auth_required"), 403)
        return self._json(envelope({"firmware_version": "4.7.3", "box_authenticated": True}))


@pytest.fixture
def credential_store() -> StubCredentialStore:
    """Empty in-memory credential store."""
    return StubCredentialStore()


@pytest.fixture
def registered_store() -> StubCredentialStore:
    """In-memory credential store holding the fake box credential."""
    return StubCredentialStore(APP_TOKEN)


@pytest.fixture
def identity() -> AppIdentity:
    """Application identity with a fixed device name."""
    return AppIdentity(device_name="test-host")


@pytest_asyncio.fixture
async def fake_freebox():
    """Running fake box; its API root is fake_freebox.api_url."""
    freebox = FakeFreebox()
    async with TestServer(freebox.make_app()) as server:
        freebox.api_url = str(server.make_url("/api/"))
        yield freebox


@pytest_asyncio.fixture
async def transport(fake_freebox):
    """Unauthenticated transport bound to the fake box."""
    api_transport = ApiTransport(fake_freebox.api_url, timeout=5)
    yield api_transport
    await api_transport.close()

"""Tests for core/transport.py."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from pydantic import BaseModel

from freebox_exporter.core.auth.models import ChallengeResult, PromptPayload, PromptResult
from freebox_exporter.core.exceptions import ProtocolError, TransportError
from freebox_exporter.core.http_client import create_client_session
from freebox_exporter.core.transport import ApiTransport, parse_envelope


class StatusResult(BaseModel):
    status: str


class TestParseEnvelope:
    """Tests for parse_envelope."""

    def test_success(self):
        """Test a successful envelope yields the typed result."""
        body = json.dumps({"success": True, "result": {"status": "pending", "challenge": "abc"}})

        result = parse_envelope(body, StatusResult)

        assert result.status == "pending"

    def test_not_success_carries_server_details(self):
        """Test success=false is a ProtocolError with the box error code."""
        body = json.dumps(
            {
                "success": False,
                "msg": "Erreur d'authentification de l'application",
                "error_code": "invalid_token",
                "uid": "23b86ec8091013d668829fe12791fdab",
            }
        )

        with pytest.raises(ProtocolError) as exc_info:
            parse_envelope(body, StatusResult, endpoint="v4/login/session")

        err = exc_info.value
        assert err.error_code == "invalid_token"
        assert err.server_message == "Erreur d'authentification de l'application"
        assert err.endpoint == "v4/login/session"
        assert "Erreur d'authentification" in str(err)

    def test_missing_success_flag(self):
        """Test an envelope without success flag is not trusted."""
        with pytest.raises(ProtocolError, match="not success"):
            parse_envelope(json.dumps({"result": {"status": "granted"}}), StatusResult)

    def test_missing_result(self):
        """Test success without result is a failure."""
        with pytest.raises(ProtocolError, match="Response was empty"):
            parse_envelope(json.dumps({"success": True}), StatusResult)

    def test_malformed_json(self):
        """Test non-JSON bodies are rejected."""
        with pytest.raises(ProtocolError, match="Malformed response"):
            parse_envelope("<html>502 Bad Gateway</html>", StatusResult)

    def test_invalid_utf8_bytes(self):
        """Test a body that is not valid UTF-8 is malformed."""
        with pytest.raises(ProtocolError, match="Malformed response"):
            parse_envelope(b'{"success": true, "result": {"status": "\xff\xfe"}}', StatusResult)

    def test_result_does_not_match_model(self):
        """Test a result missing required fields is rejected."""
        with pytest.raises(ProtocolError, match="expected StatusResult"):
            parse_envelope(json.dumps({"success": True, "result": {"track_id": 1}}), StatusResult)


class TestApiTransport:
    """Tests for ApiTransport against the fake box."""

    def test_api_url_gets_trailing_slash(self):
        """Test the API root is normalized."""
        assert ApiTransport("https://mafreebox.freebox.fr/api").api_url == "https://mafreebox.freebox.fr/api/"

    @pytest.mark.asyncio
    async def test_get(self, fake_freebox, transport):
        """Test GET unwraps the result."""
        result = await transport.get("v4/login/", ChallengeResult)

        assert result.challenge == fake_freebox.challenge
        assert fake_freebox.requests == [("GET", "/api/v4/login/")]

    @pytest.mark.asyncio
    async def test_post_sends_json_payload(self, fake_freebox, transport):
        """Test POST sends the payload as a JSON body."""
        payload = PromptPayload(app_id="app", app_name="name", app_version="1.0", device_name="host")

        result = await transport.post("v4/login/authorize", payload, PromptResult)

        assert result.track_id == fake_freebox.track_id
        assert fake_freebox.prompt_bodies == [
            {"app_id": "app", "app_name": "name", "app_version": "1.0", "device_name": "host"}
        ]

    @pytest.mark.asyncio
    async def test_error_status_with_envelope(self, fake_freebox, transport):
        """Test a 4xx answer is reported through its envelope."""
        fake_freebox.overrides[("GET", "/api/v4/login/")] = (
            403,
            json.dumps({"success": False, "msg": "Too many attempts", "error_code": "ratelimited"}),
        )

        with pytest.raises(ProtocolError) as exc_info:
            await transport.get("v4/login/", ChallengeResult)

        assert exc_info.value.error_code == "ratelimited"

    @pytest.mark.asyncio
    async def test_unreachable_host(self):
        """Test connection failures become TransportError."""
        transport = ApiTransport("http://127.0.0.1:1/api/", timeout=2)
        try:
            with pytest.raises(TransportError) as exc_info:
                await transport.get("v4/login/", ChallengeResult)
        finally:
            await transport.close()

        assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)
        assert exc_info.value.url == "http://127.0.0.1:1/api/v4/login/"

    @pytest.mark.asyncio
    async def test_close_leaves_injected_session_open(self, fake_freebox):
        """Test an injected session is not closed by the transport."""
        async with aiohttp.ClientSession() as session:
            transport = ApiTransport(fake_freebox.api_url, session=session)
            await transport.get("v4/login/", ChallengeResult)
            await transport.close()

            assert not session.closed

    @pytest.mark.asyncio
    async def test_close_owned_session(self, fake_freebox):
        """Test the owned session is closed and reopened on demand."""
        transport = ApiTransport(fake_freebox.api_url)
        await transport.get("v4/login/", ChallengeResult)
        await transport.close()

        result = await transport.get("v4/login/", ChallengeResult)
        await transport.close()

        assert result.challenge == fake_freebox.challenge

    @pytest.mark.asyncio
    async def test_invalid_utf8_body(self, fake_freebox, transport):
        """Test a body that is not valid UTF-8 is a protocol error."""
        fake_freebox.overrides[("GET", "/api/v4/login/")] = (
            200,
            b'{"success": true, "result": {"challenge": "\xff\xfe"}}',
        )

        with pytest.raises(ProtocolError, match="Malformed response"):
            await transport.get("v4/login/", ChallengeResult)

    @pytest.mark.asyncio
    async def test_concurrent_first_requests_share_session(self, fake_freebox):
        """Test concurrent requests on a fresh transport open a single session."""
        transport = ApiTransport(fake_freebox.api_url)
        factory = AsyncMock(side_effect=create_client_session)

        with patch("freebox_exporter.core.transport.create_client_session", factory):
            results = await asyncio.gather(*(transport.get("v4/login/", ChallengeResult) for _ in range(3)))
        session = transport._session
        await transport.close()

        assert factory.await_count == 1
        assert all(result.challenge == fake_freebox.challenge for result in results)
        assert session is not None and session.closed

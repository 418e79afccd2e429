"""Request and result payloads of the login API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PromptPayload(BaseModel):
    """Body of POST v4/login/authorize."""

    app_id: str
    app_name: str
    app_version: str
    device_name: str


class PromptResult(BaseModel):
    """Result of POST v4/login/authorize."""

    app_token: str = Field(repr=False)
    track_id: int


class AuthorizationResult(BaseModel):
    """Result of GET v4/login/authorize/{track_id}."""

    status: str


class ChallengeResult(BaseModel):
    """Result of GET v4/login/."""

    challenge: str = Field(repr=False)
    logged_in: bool | None = None


class SessionPayload(BaseModel):
    """Body of POST v4/login/session."""

    app_id: str
    password: str = Field(repr=False)


class SessionResult(BaseModel):
    """Result of POST v4/login/session.

    The box may report a permission as null; it counts as not granted.
    """

    session_token: str | None = Field(default=None, repr=False)
    permissions: dict[str, bool | None] = Field(default_factory=dict)

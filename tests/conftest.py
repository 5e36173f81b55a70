"""Shared test fixtures for sessionbridge.

Provides fake capability implementations (OAuth client, profile fetcher,
interactive web flow), a ready-made orchestrator, isolated XDG directories,
and output-state reset. Fixtures are discovered automatically by pytest.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

import pytest

from sessionbridge.auth.base import (
    CallbackResult,
    OAuthClient,
    OAuthSession,
    ProfileFetcher,
    WebAuthFlow,
)
from sessionbridge.models import Profile, Settings
from sessionbridge.orchestrator import SessionOrchestrator
from sessionbridge.output import OutputFormat, OutputManager, reset_output, set_output

REDIRECT_URL = "https://app.example.com/callback#state=abc&code=123"


# ---------------------------------------------------------------------------
# Fake capabilities
# ---------------------------------------------------------------------------


class FakeSession(OAuthSession):
    """Session whose sign-out forgets the client's persisted session."""

    def __init__(self, client: Optional[FakeOAuthClient] = None, did: str = "did:plc:alice"):
        self._client = client
        self._did = did
        self.sign_out_calls = 0

    @property
    def did(self) -> str:
        return self._did

    def authorization_headers(self) -> dict[str, str]:
        return {"Authorization": "Bearer fake-token"}

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self._client is not None:
            self._client.persisted = None


class FakeOAuthClient(OAuthClient):
    """In-memory OAuth client recording every call."""

    def __init__(self) -> None:
        self.persisted: Optional[FakeSession] = None
        self.authorize_calls: list[tuple[str, str, str]] = []
        self.callback_params: list[dict[str, str]] = []
        self.authorize_error: Optional[Exception] = None
        self.callback_error: Optional[Exception] = None
        self.init_error: Optional[Exception] = None
        self.init_calls = 0
        self.calls: list[str] = []

    async def authorize(self, input: str, *, scope: str, response_mode: str = "fragment") -> str:
        self.authorize_calls.append((input, scope, response_mode))
        self.calls.append("authorize")
        if self.authorize_error is not None:
            raise self.authorize_error
        return "https://auth.example.com/oauth/authorize?state=abc"

    async def callback(self, params: Mapping[str, str]) -> CallbackResult:
        self.callback_params.append(dict(params))
        if self.callback_error is not None:
            raise self.callback_error
        session = FakeSession(self)
        self.persisted = session
        return CallbackResult(session=session, state=params.get("state"))

    async def init(self) -> Optional[OAuthSession]:
        self.init_calls += 1
        self.calls.append("init")
        if self.init_error is not None:
            raise self.init_error
        return self.persisted


class FakeProfileFetcher(ProfileFetcher):
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.error: Optional[Exception] = None

    async def get_profile(self, session: OAuthSession) -> Profile:
        self.calls.append(session.did)
        if self.error is not None:
            raise self.error
        return Profile(
            handle="alice.test",
            display_name="Alice",
            avatar="https://cdn.example.com/alice.jpg",
        )


class FakeWebFlow(WebAuthFlow):
    def __init__(self, redirect_url: Optional[str] = REDIRECT_URL) -> None:
        self.redirect_url = redirect_url
        self.error: Optional[Exception] = None
        self.launches: list[tuple[str, bool]] = []

    async def launch(self, url: str, *, interactive: bool = True) -> Optional[str]:
        self.launches.append((url, interactive))
        if self.error is not None:
            raise self.error
        return self.redirect_url


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams, so a stale manager
    would write to closed files in the next test. The log handler bound
    to that manager's console is removed for the same reason.
    """
    yield
    reset_output()
    logger = logging.getLogger("sessionbridge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


_SETTING_VARS = [
    "CLIENT_ID",
    "REDIRECT_URI",
    "HANDLE_RESOLVER",
    "SERVER_URL",
    "SESSIONBRIDGE_CLIENT_ID",
    "SESSIONBRIDGE_REDIRECT_URI",
    "SESSIONBRIDGE_HANDLE_RESOLVER",
    "SESSIONBRIDGE_SERVER_URL",
    "SESSIONBRIDGE_SCOPE",
    "SESSIONBRIDGE_CLIENT_NAME",
    "SESSIONBRIDGE_AUTHORIZATION_SERVER",
    "SESSIONBRIDGE_API_URL",
    "SESSIONBRIDGE_TIMEOUT",
]


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories into tmp_path and clear settings variables."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("sessionbridge.config._is_xdg_platform", lambda: True)
    for var in _SETTING_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        client_id="https://app.example.com/client-metadata.json",
        redirect_uri="https://app.example.com/callback",
        handle_resolver="https://bsky.social",
        server_url="https://app.example.com",
        authorization_server="https://auth.example.com",
        api_url="https://api.example.com",
    )


@pytest.fixture
def oauth_client() -> FakeOAuthClient:
    return FakeOAuthClient()


@pytest.fixture
def profiles() -> FakeProfileFetcher:
    return FakeProfileFetcher()


@pytest.fixture
def web_flow() -> FakeWebFlow:
    return FakeWebFlow()


@pytest.fixture
def orchestrator(
    settings: Settings,
    oauth_client: FakeOAuthClient,
    profiles: FakeProfileFetcher,
    web_flow: FakeWebFlow,
) -> SessionOrchestrator:
    return SessionOrchestrator(settings, oauth_client, profiles, web_flow)

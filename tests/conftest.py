"""Shared test fixtures for authflow.

Provides fake collaborators for the request pipeline (a recording
diagnostics sink, a scripted token service, a counting session listener),
a helper to build an :class:`~authflow.client.AuthClient` over an
:class:`httpx.MockTransport`, and config isolation.  These fixtures are
automatically discovered by pytest.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from authflow.auth.credential_store import MemoryCredentialStore
from authflow.auth.tokens import TokenService
from authflow.client import AuthClient
from authflow.connectivity import ConnectivityGate
from authflow.models import ClientConfig, CredentialState, TokenData, TokenResponse
from authflow.output import reset_output
from authflow.result import Result, Success
from authflow.session import SessionHooks, SessionListener


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation, so the
    log handler installed by the CLI callback is removed as well.
    """
    yield
    reset_output()
    log = logging.getLogger("authflow")
    for handler in list(log.handlers):
        log.removeHandler(handler)
    log.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


def token_result(token: str) -> Success[TokenResponse]:
    return Success(TokenResponse(data=TokenData(token=token)))


class RecordingSink:
    """Diagnostics sink that keeps every record."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def record(self, message: str, code: str) -> None:
        self.records.append((message, code))

    @property
    def codes(self) -> list[str]:
        return [code for _, code in self.records]


class FakeTokenService(TokenService):
    """Token service returning scripted results (or raising *error*) and counting calls."""

    def __init__(
        self,
        application: Optional[Result[TokenResponse]] = None,
        user_refresh: Optional[Result[TokenResponse]] = None,
        user_issue: Optional[Result[TokenResponse]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ) -> None:
        self.application = application or token_result("T1")
        self.user_refresh = user_refresh or token_result("U1")
        self.user_issue = user_issue or token_result("U2")
        self.delay = delay
        self.error = error
        self.application_calls = 0
        self.user_refresh_calls = 0
        self.issued_for: list[Optional[str]] = []

    async def refresh_application_token(self) -> Result[TokenResponse]:
        self.application_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.application

    async def refresh_user_token(self) -> Result[TokenResponse]:
        self.user_refresh_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.user_refresh

    async def issue_user_token(self, individual_id: Optional[str]) -> Result[TokenResponse]:
        self.issued_for.append(individual_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.user_issue


class CountingListener(SessionListener):
    """Session listener counting each teardown step."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def reset_navigation(self) -> None:
        self.calls.append("reset_navigation")

    def clear_web_cache(self) -> None:
        self.calls.append("clear_web_cache")

    def clear_profile(self) -> None:
        self.calls.append("clear_profile")

    def log_event(self, name: str) -> None:
        self.calls.append(f"log_event:{name}")

    def set_logout_pending(self) -> None:
        self.calls.append("set_logout_pending")


# ---------------------------------------------------------------------------
# Pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(brand_id="B1", host="api.example.com")


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def tokens() -> FakeTokenService:
    return FakeTokenService()


@pytest.fixture
def store() -> MemoryCredentialStore:
    return MemoryCredentialStore(CredentialState(application_token="A0"))


@pytest.fixture
def listener() -> CountingListener:
    return CountingListener()


@pytest.fixture
def gate() -> ConnectivityGate:
    return ConnectivityGate()


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def make_client(
    config: ClientConfig,
    store: MemoryCredentialStore,
    tokens: FakeTokenService,
    gate: ConnectivityGate,
    sink: RecordingSink,
    listener: CountingListener,
) -> Callable[..., AuthClient]:
    """Factory building an AuthClient over a MockTransport.

    Keyword arguments override the default collaborators.
    """

    def _make(handler: Handler, **overrides: object) -> AuthClient:
        kwargs: dict[str, object] = {
            "config": config,
            "credentials": store,
            "tokens": tokens,
            "gate": gate,
            "sink": sink,
            "session_hooks": SessionHooks([listener]),
            "transport": httpx.MockTransport(handler),
        }
        kwargs.update(overrides)
        return AuthClient(**kwargs)  # type: ignore[arg-type]

    return _make


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    clears all AUTHFLOW_* environment variables and changes the working
    directory to tmp_path.
    """
    monkeypatch.setattr("authflow.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["AUTHFLOW_HOST", "AUTHFLOW_BRAND_ID"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def make_tokens() -> type[FakeTokenService]:
    """The scripted token service class, for tests that need custom results."""
    return FakeTokenService

"""Shared test fixtures for openveo_client.

Provides reusable fixtures for isolated config environments, a fake OpenVeo
web service served through :class:`httpx.MockTransport`, output state
management and CLI invocation. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from openveo_client.models import ClientSettings
from openveo_client.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake OpenVeo web service
# ---------------------------------------------------------------------------


class FakeWebService:
    """In-memory OpenVeo web service for :class:`httpx.MockTransport`.

    The token end point hands out ``token-1``, ``token-2``, ... on each
    call. Other end points answer with the response registered through
    :meth:`route`, or ``{"path": <path>}`` by default. Tokens listed in
    :attr:`expired_tokens` are answered with a token expiry error.

    Attributes:
        requests: Every :class:`httpx.Request` received, in order.
        token_calls: Number of calls to the token end point.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_calls = 0
        self.token_response: Optional[tuple[int, Any]] = None
        self.expired_tokens: set[str] = set()
        self.delay = 0.0
        self._routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def route(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json_body: Any = None,
        content: Optional[bytes] = None,
    ) -> None:
        """Register a fixed response for ``method path``."""

        def _respond(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status_code, content=content)
            return httpx.Response(status_code, json=json_body)

        self._routes[(method.upper(), path)] = _respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path.endswith("/token"):
            self.token_calls += 1
            if self.token_response is not None:
                status_code, body = self.token_response
                return httpx.Response(status_code, json=body)
            return httpx.Response(200, json={"access_token": f"token-{self.token_calls}"})

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token in self.expired_tokens:
            return httpx.Response(
                401, json={"error": "invalid_token", "error_description": "Token already expired"}
            )

        respond = self._routes.get((request.method, request.url.path))
        if respond is not None:
            return respond(request)
        return httpx.Response(200, json={"path": request.url.path})

    async def async_handler(self, request: httpx.Request) -> httpx.Response:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.handler(request)

    @property
    def api_requests(self) -> list[httpx.Request]:
        """Received requests, token requests excluded."""
        return [r for r in self.requests if not r.url.path.endswith("/token")]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.async_handler)


@pytest.fixture
def web_service() -> FakeWebService:
    """A fresh fake web service."""
    return FakeWebService()


@pytest.fixture
def fast_settings() -> ClientSettings:
    """Client settings with short timeouts suitable for tests."""
    return ClientSettings(execution_timeout=2.0, abort_timeout=0.5)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, forces the XDG layout, and
    clears all OPENVEO_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("openveo_client.config._is_xdg_platform", lambda: True)

    for var in [
        "OPENVEO_PROFILE",
        "OPENVEO_URL",
        "OPENVEO_CLIENT_ID",
        "OPENVEO_CLIENT_SECRET",
        "OPENVEO_ENV",
        "OPENVEO_TIMEOUT",
        "OPENVEO_ABORT_TIMEOUT",
        "OPENVEO_MAX_AUTH_ATTEMPTS",
        "OPENVEO_FAIL_ON_HTTP_ERROR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, plain output manager for tests that don't care about output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

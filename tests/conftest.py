"""Shared test fixtures for oauth2kit.

Provides an in-process fake authorization server, isolated config
environments, output state management and a CLI runner. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import base64
import json
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qs, unquote_plus

import httpx
import pytest

from oauth2kit.client import OAuth2Client
from oauth2kit.output import OutputFormat, OutputManager, reset_output, set_output


SERVER_URL = "https://auth.example.test/"


# ---------------------------------------------------------------------------
# Fake authorization server
# ---------------------------------------------------------------------------


class FakeAuthServer:
    """A scripted authorization server reached through ``ClientSettings.transport``.

    Token endpoint behaviour is keyed on the client id and refresh token:

    * ``refresh_token_000`` -> ``access_token_001`` / ``refresh_token_001``
    * ``refresh_token_001`` -> ``access_token_002`` and no refresh token
    * ``refresh_token_malformed`` -> 200 with a numeric ``access_token``
    * any other grant -> ``access_token_000`` / ``refresh_token_000``
    * client ``oauth2-error`` -> 400 ``invalid_client``
    * client ``json-error`` -> 418 ``application/problem+json``
    * client ``general-http-error`` -> 500 ``text/plain``

    Every request is recorded in :attr:`requests`.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.metadata: Optional[dict[str, Any]] = None
        self.metadata_status = 200
        self.metadata_content_type = "application/json"
        self.expires_in: Any = 3600
        self.issue_id_token = False
        self.unreachable = False

    # -- inspection helpers -------------------------------------------------

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @staticmethod
    def form(request: httpx.Request) -> dict[str, list[str]]:
        return parse_qs(request.content.decode("utf-8"))

    @staticmethod
    def basic_credentials(request: httpx.Request) -> Optional[tuple[str, str]]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Basic "):
            return None
        raw = base64.b64decode(header[6:]).decode("utf-8")
        client_id, _, secret = raw.partition(":")
        return unquote_plus(client_id), unquote_plus(secret)

    # -- transport -----------------------------------------------------------

    async def transport(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        return self.handle(request)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/.well-known/"):
            return self._metadata(request)
        if path.endswith("/token"):
            return self._token(request)
        if path.endswith("/introspect"):
            form = self.form(request)
            return httpx.Response(
                200,
                json={"active": True, "scope": "read", "client_id": "test-client",
                      "token": form.get("token", [""])[0]},
                request=request,
            )
        if path.endswith("/revoke"):
            return httpx.Response(
                200,
                content=b"",
                headers={"Content-Type": "application/octet-stream"},
                request=request,
            )
        return httpx.Response(404, text="Not Found", request=request)

    def _metadata(self, request: httpx.Request) -> httpx.Response:
        if self.metadata is None:
            return httpx.Response(404, text="Not Found", request=request)
        return httpx.Response(
            self.metadata_status,
            content=json.dumps(self.metadata).encode(),
            headers={"Content-Type": self.metadata_content_type},
            request=request,
        )

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = self.form(request)
        creds = self.basic_credentials(request)
        client_id = creds[0] if creds else form.get("client_id", [""])[0]

        if client_id == "oauth2-error":
            return httpx.Response(
                400,
                json={"error": "invalid_client", "error_description": "OOps!"},
                request=request,
            )
        if client_id == "json-error":
            return httpx.Response(
                418,
                content=json.dumps({"type": "about:blank", "title": "teapot"}).encode(),
                headers={"Content-Type": "application/problem+json"},
                request=request,
            )
        if client_id == "general-http-error":
            return httpx.Response(
                500,
                text="Internal Server Error",
                headers={"Content-Type": "text/plain"},
                request=request,
            )

        body: dict[str, Any]
        refresh = form.get("refresh_token", [None])[0]
        if form.get("grant_type") == ["refresh_token"] and refresh == "refresh_token_000":
            body = {"access_token": "access_token_001", "refresh_token": "refresh_token_001"}
        elif form.get("grant_type") == ["refresh_token"] and refresh == "refresh_token_001":
            body = {"access_token": "access_token_002"}
        elif form.get("grant_type") == ["refresh_token"] and refresh == "refresh_token_malformed":
            body = {"access_token": 12345}
        elif form.get("grant_type") == ["refresh_token"]:
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Unknown refresh token"},
                request=request,
            )
        else:
            body = {"access_token": "access_token_000", "refresh_token": "refresh_token_000"}

        body["token_type"] = "bearer"
        if self.expires_in is not None:
            body["expires_in"] = self.expires_in
        if self.issue_id_token:
            body["id_token"] = "id_token_000"
        return httpx.Response(200, json=body, request=request)


@pytest.fixture
def auth_server() -> FakeAuthServer:
    """A fresh :class:`FakeAuthServer` per test."""
    return FakeAuthServer()


@pytest.fixture
def make_client(auth_server: FakeAuthServer):
    """Factory for :class:`OAuth2Client` instances wired to ``auth_server``.

    Keyword arguments override the defaults (``server``, ``client_id``,
    ``client_secret``).
    """

    def _make(cls: type = OAuth2Client, **overrides: Any) -> OAuth2Client:
        settings: dict[str, Any] = {
            "server": SERVER_URL,
            "client_id": "test-client",
            "client_secret": "test-secret",
            "transport": auth_server.transport,
        }
        settings.update(overrides)
        return cls(**settings)

    return _make


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use. The CLI log
    handler is bound to those streams too, so it is removed as well.
    """
    yield
    reset_output()
    logger = logging.getLogger("oauth2kit")
    for handler in list(logger.handlers):
        if getattr(handler, "_oauth2kit_cli", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and token storage to a temporary directory.

    Forces XDG path resolution, points XDG_CONFIG_HOME and XDG_DATA_HOME
    at subdirectories of tmp_path and clears all OAUTH2KIT_* environment
    variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("oauth2kit.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["OAUTH2KIT_PROFILE", "OAUTH2KIT_SERVER"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
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

"""Shared test fixtures for platform-auth.

Provides an isolated config environment, an in-memory keyring backend, a
fake identity provider served through :class:`httpx.MockTransport`, and
helpers for building tokens and credential entries. These fixtures are
automatically discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import json
import threading
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qsl, urlsplit

import httpx
import jwt
import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from platform_auth.endpoints import get_endpoints
from platform_auth.models import AuthInfo, CredentialEntry, TokenSet, utcnow
from platform_auth.output import reset_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"

BASE_URL = "https://login.example.com"
REALM = "Broker"
CLIENT_ID = "test-client"
USER_EMAIL = "jane@example.com"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_token(claims: dict[str, Any]) -> str:
    """Return an HS256 JWT carrying *claims* (signature is never verified)."""
    return jwt.encode(claims, "test-signing-secret", algorithm="HS256")


def make_entry(
    name: str = USER_EMAIL,
    hash: Optional[str] = None,
    base_url: str = BASE_URL,
    realm: str = REALM,
    authenticator: str = "pkce",
    access_token: str = "access-1",
    refresh_token: Optional[str] = "refresh-1",
    id_token: Optional[str] = "id-1",
    expires_in: float = 3600,
) -> CredentialEntry:
    return CredentialEntry(
        hash=hash or f"{CLIENT_ID}:{name}",
        name=name,
        authenticator=authenticator,
        client_id=CLIENT_ID,
        env="prod",
        base_url=base_url,
        realm=realm,
        tokens=TokenSet(
            access_token=access_token,
            refresh_token=refresh_token,
            id_token=id_token,
            expires_at=utcnow() + timedelta(seconds=expires_in),
        ),
        auth_info=AuthInfo(email=name),
    )


def form_of(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body."""
    return dict(parse_qsl(request.content.decode("utf-8")))


def browser_redirect(url: str, **overrides: str) -> None:
    """Act as the browser: follow authorization *url* back to its listener.

    The request is sent from a thread so the caller can go on to await the
    login. Pass an empty string to drop a parameter.
    """
    query = dict(parse_qsl(urlsplit(url).query))
    params = {"code": "auth-code", "state": query["state"]}
    params.update(overrides)
    params = {k: v for k, v in params.items() if v}

    def visit() -> None:
        httpx.get(query["redirect_uri"], params=params, trust_env=False)

    threading.Thread(target=visit, daemon=True).start()


class MemoryKeyring(KeyringBackend):
    """Keyring backend that keeps passwords in a dict."""

    priority = 1  # type: ignore[assignment]

    def __init__(self) -> None:
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> Optional[str]:
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError(username) from None


class FakeProvider:
    """In-process identity provider speaking the Keycloak endpoint layout.

    Every request is recorded in :attr:`requests`. Responses can be tuned per
    test through the public attributes.
    """

    def __init__(self, base_url: str = BASE_URL, realm: str = REALM) -> None:
        self.endpoints = get_endpoints(base_url, realm)
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_error: dict[str, Any] = {
            "error": "invalid_grant",
            "error_description": "Invalid user credentials",
        }
        self.token_overrides: dict[str, Any] = {}
        self.userinfo: dict[str, Any] = {"sub": "user-1", "email": USER_EMAIL, "name": "Jane Doe"}
        self.userinfo_status = 200
        self.logout_status = 200
        self.server_info: dict[str, Any] = json.loads(
            (FIXTURES_DIR / "server_info.json").read_text(encoding="utf-8")
        )
        self.issued = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]

    def token_forms(self) -> list[dict[str, str]]:
        return [form_of(r) for r in self.requests_to(self.endpoints.token)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?")[0]
        if url == self.endpoints.token:
            return self._token(form_of(request))
        if url == self.endpoints.userinfo:
            return httpx.Response(self.userinfo_status, json=self.userinfo)
        if url == self.endpoints.logout:
            return httpx.Response(self.logout_status, text="")
        if url == self.endpoints.well_known:
            return httpx.Response(200, json=self.server_info)
        return httpx.Response(404, json={"error": "not_found"})

    def _token(self, form: dict[str, str]) -> httpx.Response:
        if self.token_status != 200:
            return httpx.Response(self.token_status, json=self.token_error)
        self.issued += 1
        body: dict[str, Any] = {
            "access_token": f"access-{self.issued}",
            "refresh_token": f"refresh-{self.issued}",
            "token_type": "Bearer",
            "expires_in": 300,
            "refresh_expires_in": 1800,
        }
        if form.get("grant_type") in ("password", "authorization_code"):
            body["id_token"] = make_token({"sub": "user-1", "email": USER_EMAIL})
        body.update(self.token_overrides)
        return httpx.Response(200, json=body)


# ---------------------------------------------------------------------------
# Auto-use isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during a
    test, the cached references become stale. Resetting forces a fresh
    manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and data to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    and clears every PLATFORM_AUTH_* environment variable so tests never
    touch real user state.
    """
    monkeypatch.setattr("platform_auth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "PLATFORM_AUTH_ENV",
        "PLATFORM_AUTH_BASE_URL",
        "PLATFORM_AUTH_REALM",
        "PLATFORM_AUTH_CLIENT_ID",
        "PLATFORM_AUTH_TOKEN_STORE_TYPE",
        "PLATFORM_AUTH_TOKEN_STORE_DIR",
        "PLATFORM_AUTH_INTERACTIVE_LOGIN_TIMEOUT",
        "PLATFORM_AUTH_TOKEN_REFRESH_THRESHOLD",
    ]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def memory_keyring() -> MemoryKeyring:
    """Install an in-memory keyring backend for the duration of a test."""
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


# ---------------------------------------------------------------------------
# Provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def provider() -> FakeProvider:
    """A fake identity provider at :data:`BASE_URL`."""
    return FakeProvider()


@pytest.fixture
def server_info_doc() -> dict[str, Any]:
    """The canonical discovery document."""
    with open(FIXTURES_DIR / "server_info.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def rsa_key_file(tmp_path: Path) -> Path:
    """Write a fresh unencrypted PEM RSA private key and return its path."""
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    path = tmp_path / "private_key.pem"
    path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
"""Abstract base class for authenticators.

An authenticator implements exactly one OAuth2 grant type. It holds the
resolved configuration for a single login attempt -- client id, realm,
endpoints, and grant-specific secrets -- and exposes:

- :attr:`Authenticator.hash` -- a deterministic fingerprint of that
  configuration, used as the token store key. Computed from constructor
  inputs only; never touches the network.
- :meth:`Authenticator.login` -- run the grant and return a normalized
  :class:`~platform_auth.models.TokenResult`.
- :meth:`Authenticator.refresh` -- exchange a stored refresh token.

To add a grant, subclass :class:`Authenticator`, set :attr:`kind`, and
implement :meth:`~Authenticator.token_params`. Interactive grants override
:meth:`~Authenticator.login` as well.

See Also:
    :class:`~platform_auth.auth.Auth` -- selects and drives authenticators.
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
import jwt

from platform_auth.client import create_client, error_detail
from platform_auth.endpoints import get_endpoints, normalize_base_url
from platform_auth.exceptions import AuthError, InvalidArgumentError, NetworkError
from platform_auth.models import (
    AuthInfo,
    CredentialEntry,
    EndpointSet,
    TokenResult,
    TokenSet,
)

DEFAULT_INTERACTIVE_LOGIN_TIMEOUT = 120.0
"""Seconds an interactive login waits for its callback by default."""


def decode_claims(token: Optional[str]) -> dict[str, Any]:
    """Decode a JWT's claims without verifying its signature.

    The tokens come straight from the token endpoint over TLS, so the claims
    are only used to label the account. Opaque (non-JWT) tokens yield ``{}``.
    """
    if not token:
        return {}
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return {}
    return claims if isinstance(claims, dict) else {}


def _require(name: str, value: Any) -> str:
    if not value or not isinstance(value, str):
        raise InvalidArgumentError(f"Expected {name} to be a non-empty string")
    return value


class Authenticator(ABC):
    """Base class for all grant strategies.

    Args:
        base_url: Identity provider base URL.
        client_id: OAuth2 client id.
        realm: Identity provider realm.
        env: Environment name, recorded on the resulting entry.
        endpoints: Optional endpoint override (e.g. from discovery). Defaults
            to the templated Keycloak endpoints for *base_url* and *realm*.
        scope: Optional OAuth2 scope string.
        interactive_login_timeout: Seconds interactive grants wait for the
            browser callback.
        transport: Optional httpx transport used for every request.
        logger: Logger to report to.

    Raises:
        InvalidArgumentError: If *base_url*, *client_id*, or *realm* is
            missing.
    """

    #: Unique grant identifier, recorded on every entry this authenticator creates.
    kind: str = "abstract"

    #: Whether :meth:`login` needs a browser round trip.
    interactive: bool = False

    #: Whether tokens identify a person (so the userinfo endpoint is consulted).
    user_identity: bool = False

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        client_id: Optional[str] = None,
        realm: Optional[str] = None,
        env: Optional[str] = None,
        endpoints: Optional[EndpointSet] = None,
        scope: Optional[str] = None,
        interactive_login_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = normalize_base_url(_require("base_url", base_url))
        self.client_id = _require("client_id", client_id)
        self.realm = _require("realm", realm)
        self.env = env
        self.scope = scope
        self.interactive_login_timeout = (
            interactive_login_timeout
            if interactive_login_timeout is not None
            else DEFAULT_INTERACTIVE_LOGIN_TIMEOUT
        )
        self._endpoints = endpoints
        self._transport = transport
        self._log = logger or logging.getLogger(type(self).__module__)

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    @property
    def endpoints(self) -> EndpointSet:
        """The endpoint set this authenticator talks to."""
        if self._endpoints is None:
            self._endpoints = get_endpoints(self.base_url, self.realm, self.client_id)
        return self._endpoints

    def hash_params(self) -> dict[str, Any]:
        """Extra grant-specific inputs that distinguish login slots."""
        return {}

    @property
    def hash(self) -> str:
        """Deterministic fingerprint of kind, client id, realm, and base URL.

        Formatted as ``<client_id>:<sha256 hex digest>`` so that stored
        entries stay recognisable by client.
        """
        params = {
            "type": self.kind,
            "client_id": self.client_id,
            "realm": self.realm,
            "base_url": self.base_url,
            **self.hash_params(),
        }
        digest = hashlib.sha256(
            json.dumps(params, sort_keys=True, separators=(",", ":")).encode("utf-8")
        ).hexdigest()
        return f"{self.client_id}:{digest}"

    # ------------------------------------------------------------------ #
    # Grant
    # ------------------------------------------------------------------ #

    @abstractmethod
    def token_params(self) -> dict[str, str]:
        """Return the token endpoint form body for this grant."""
        ...

    def client_auth_params(self) -> dict[str, str]:
        """Return the client authentication fields sent with every token request."""
        return {"client_id": self.client_id}

    async def login(self, **options: Any) -> Any:
        """Run the grant and return a :class:`~platform_auth.models.TokenResult`.

        Non-interactive grants post :meth:`token_params` straight to the
        token endpoint. *options* is accepted for interface compatibility
        with interactive grants and ignored.

        Raises:
            AuthError: If the provider rejects the request.
            NetworkError: If the token endpoint cannot be reached.
        """
        tokens = await self._request_token(self.token_params())
        return TokenResult(tokens=tokens, auth_info=await self.get_user_info(tokens))

    async def refresh(self, entry: CredentialEntry) -> TokenResult:
        """Exchange the entry's refresh token for new tokens.

        Tokens the provider omits from the refresh response (refresh or id
        token) are carried over from *entry*.

        Raises:
            AuthError: If the entry has no refresh token or the provider
                rejects it.
            NetworkError: If the token endpoint cannot be reached.
        """
        if not entry.tokens.refresh_token:
            raise AuthError(f"No refresh token available for {entry.name}")

        data = {
            "grant_type": "refresh_token",
            "refresh_token": entry.tokens.refresh_token,
            **self.client_auth_params(),
        }
        tokens = await self._request_token(data)
        if tokens.refresh_token is None:
            tokens.refresh_token = entry.tokens.refresh_token
            tokens.refresh_expires_at = entry.tokens.refresh_expires_at
        if tokens.id_token is None:
            tokens.id_token = entry.tokens.id_token
        return TokenResult(tokens=tokens, auth_info=entry.auth_info)

    async def _request_token(self, data: dict[str, str]) -> TokenSet:
        """POST *data* to the token endpoint and return the issued tokens."""
        url = self.endpoints.token
        self._log.debug("Requesting %s token from %s", data.get("grant_type"), url)
        try:
            async with create_client(self._transport) as client:
                response = await client.post(url, data=data)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Token request to {url} failed: {exc}") from exc

        if not response.is_success:
            detail = error_detail(response)
            message = f"Authentication failed: HTTP {response.status_code}"
            raise AuthError(f"{message}: {detail}" if detail else message)

        try:
            token_data = response.json()
        except ValueError as exc:
            raise AuthError(f"Invalid token response from {url}") from exc
        if not isinstance(token_data, dict) or not token_data.get("access_token"):
            raise AuthError("Token response missing 'access_token' field")
        try:
            return TokenSet.from_token_response(token_data)
        except (ValueError, TypeError, OverflowError) as exc:
            raise AuthError(f"Invalid token response from {url}: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Identity claims
    # ------------------------------------------------------------------ #

    async def get_user_info(self, tokens: TokenSet) -> Optional[AuthInfo]:
        """Collect identity claims for *tokens*.

        Claims decoded from the id token (or the access token) are merged with
        the userinfo endpoint response for grants that identify a user. A
        failing userinfo call is logged and the decoded claims are used alone.
        """
        claims = decode_claims(tokens.id_token) or decode_claims(tokens.access_token)
        if self.user_identity and self.endpoints.userinfo:
            try:
                claims.update(await self._fetch_user_info(tokens))
            except (AuthError, NetworkError) as exc:
                self._log.debug("Userinfo lookup failed: %s", exc)
        return AuthInfo.model_validate(claims) if claims else None

    async def _fetch_user_info(self, tokens: TokenSet) -> dict[str, Any]:
        url = self.endpoints.userinfo
        try:
            async with create_client(self._transport) as client:
                response = await client.get(
                    url, headers={"Authorization": f"Bearer {tokens.access_token}"}
                )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Userinfo request to {url} failed: {exc}") from exc
        if not response.is_success:
            raise AuthError(f"Userinfo request failed: HTTP {response.status_code}")
        try:
            info = response.json()
        except ValueError as exc:
            raise AuthError("Invalid userinfo response") from exc
        return info if isinstance(info, dict) else {}

    # ------------------------------------------------------------------ #
    # Entries
    # ------------------------------------------------------------------ #

    def account_name(self, auth_info: Optional[AuthInfo]) -> str:
        """Name the account: email, then preferred username, then client id."""
        if auth_info is not None:
            return auth_info.email or auth_info.preferred_username or self.client_id
        return self.client_id

    def create_entry(self, result: TokenResult) -> CredentialEntry:
        """Wrap a token result in the credential entry stored under :attr:`hash`."""
        return CredentialEntry(
            hash=self.hash,
            name=self.account_name(result.auth_info),
            authenticator=self.kind,
            client_id=self.client_id,
            env=self.env,
            base_url=self.base_url,
            realm=self.realm,
            tokens=result.tokens,
            auth_info=result.auth_info,
        )

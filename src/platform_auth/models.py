"""Canonical Pydantic models shared across all platform-auth modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Persisted models** -- serialised by the token stores:
    :class:`TokenSet`, :class:`AuthInfo`, and :class:`CredentialEntry`.

**Transient models** -- computed per call and never stored:
    :class:`EndpointSet`, :class:`TokenResult`, and :class:`LoginResult`.

All models use Pydantic v2. :class:`AuthInfo` accepts unknown claims
(``extra="allow"``) so that provider-specific claims survive a round trip
through the store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are treated as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# --- Endpoints ---


class EndpointSet(BaseModel):
    """OAuth2 / OpenID Connect endpoint URLs for one base URL and realm.

    Produced by :func:`~platform_auth.endpoints.get_endpoints` or, from a
    discovery document, by
    :func:`~platform_auth.discovery.endpoints_from_server_info`. Frozen once
    built.
    """

    model_config = ConfigDict(frozen=True)

    authorization: str
    token: str
    logout: str
    userinfo: str
    well_known: str
    introspection: Optional[str] = None
    jwks: Optional[str] = None


# --- Persisted credential data ---


class TokenSet(BaseModel):
    """Tokens issued by the identity provider for one login slot.

    Attributes:
        access_token: Bearer token sent to the platform APIs.
        refresh_token: Optional token used to obtain a new access token.
        id_token: Optional OpenID Connect identity token, also used as the
            ``id_token_hint`` on logout.
        token_type: Token type reported by the provider.
        expires_at: UTC time the access token expires.
        refresh_expires_at: UTC time the refresh token expires, when the
            provider reports it.
    """

    access_token: str
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_at: datetime
    refresh_expires_at: Optional[datetime] = None

    @classmethod
    def from_token_response(
        cls, data: dict[str, Any], now: Optional[datetime] = None
    ) -> TokenSet:
        """Build a token set from a token endpoint JSON response.

        ``expires_in`` defaults to one hour when the provider omits it.
        """
        now = now or utcnow()
        expires_in = data.get("expires_in")
        expires_at = now + timedelta(
            seconds=float(expires_in) if expires_in is not None else 3600.0
        )
        refresh_expires_at = None
        refresh_expires_in = data.get("refresh_expires_in")
        if refresh_expires_in:
            refresh_expires_at = now + timedelta(seconds=float(refresh_expires_in))
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            id_token=data.get("id_token"),
            token_type=data.get("token_type") or "Bearer",
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    def seconds_remaining(self, now: Optional[datetime] = None) -> float:
        """Seconds until the access token expires (negative once expired)."""
        now = now or utcnow()
        return (_as_utc(self.expires_at) - now).total_seconds()


class AuthInfo(BaseModel):
    """Identity claims for an account, from the token or the userinfo endpoint."""

    model_config = ConfigDict(extra="allow")

    sub: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    preferred_username: Optional[str] = None


class CredentialEntry(BaseModel):
    """A single persisted login, keyed by :attr:`hash`.

    Instances are created by :class:`~platform_auth.auth.Auth` after a
    successful exchange, serialised by the token stores, and replaced in
    place (same ``hash``) when the tokens are refreshed.

    Attributes:
        hash: Fingerprint of the authenticator configuration that produced
            this entry. At most one entry per hash exists in a store.
        name: Human-readable account name (email, username, or client id).
        authenticator: Kind of the authenticator that created the entry.
        client_id: OAuth2 client the tokens were issued to.
        env: Environment name the entry was created in, if known.
        base_url: Identity provider base URL.
        realm: Identity provider realm.
        tokens: The issued tokens.
        auth_info: Decoded identity claims, if any.
    """

    hash: str = Field(description="Fingerprint of the login configuration")
    name: str = Field(description="Account name")
    authenticator: str = Field(description="Authenticator kind that created this entry")
    client_id: str
    env: Optional[str] = None
    base_url: str
    realm: str
    tokens: TokenSet
    auth_info: Optional[AuthInfo] = None

    @property
    def expired(self) -> bool:
        """Whether the access token has expired."""
        return self.tokens.seconds_remaining() <= 0

    @property
    def refresh_expired(self) -> bool:
        """Whether the refresh token is missing or has expired."""
        if not self.tokens.refresh_token:
            return True
        if self.tokens.refresh_expires_at is None:
            return False
        return utcnow() >= _as_utc(self.tokens.refresh_expires_at)


# --- Authenticator output ---


class TokenResult(BaseModel):
    """Normalized result of every authenticator exchange."""

    tokens: TokenSet
    auth_info: Optional[AuthInfo] = None


class LoginResult(BaseModel):
    """Resolved account returned by :meth:`~platform_auth.auth.Auth.login`."""

    access_token: str
    account: CredentialEntry
    user_info: Optional[AuthInfo] = None


# --- Settings ---


class AuthSettings(BaseModel):
    """Process-level defaults persisted at ``~/.config/platform-auth/config.json``.

    Loaded by :func:`~platform_auth.config.load_settings` and overridden by
    ``PLATFORM_AUTH_*`` environment variables in
    :func:`~platform_auth.config.resolve_settings`. These have the lowest
    precedence: options given to :class:`~platform_auth.auth.Auth` or to an
    individual call always win.
    """

    env: Optional[str] = Field(default=None, description="Environment name: dev, preprod, prod")
    base_url: Optional[str] = None
    realm: Optional[str] = None
    client_id: Optional[str] = None
    interactive_login_timeout: float = Field(
        default=120.0, description="Seconds to wait for the interactive login callback"
    )
    token_refresh_threshold: float = Field(
        default=0.0,
        description="Refresh tokens whose remaining lifetime is below this many seconds",
    )
    token_store_type: Optional[str] = Field(
        default="auto", description="Token store: auto, secure, file, memory"
    )
    token_store_dir: Optional[str] = None
    secure_service_name: str = "Platform Auth"

"""The :class:`Auth` facade -- the public entry point of platform-auth.

:class:`Auth` owns one token store for its lifetime and builds a fresh
authenticator per operation. Every operation first applies defaults, in
order of precedence:

1. Options passed to the call.
2. Options passed to the :class:`Auth` constructor.
3. :class:`~platform_auth.models.AuthSettings` (config file and
   ``PLATFORM_AUTH_*`` variables, when the caller supplies them).
4. The named environment's base URL and realm.

Authenticator selection is a pure function of the resolved options (see
:meth:`Auth.create_authenticator`).

Example::

    auth = Auth(client_id="my-cli", token_store_type="memory")
    result = await auth.login(username="me@example.com", password="...")
    account = await auth.get_account(username="me@example.com", password="...")
    await auth.revoke(all=True)
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import httpx
from keyring.backend import KeyringBackend

from platform_auth.authenticators import (
    PKCE,
    Authenticator,
    ClientSecret,
    ManualLogin,
    OwnerPassword,
    SignedJWT,
)
from platform_auth.client import create_client
from platform_auth.discovery import endpoints_from_server_info, get_server_info
from platform_auth.endpoints import get_endpoints
from platform_auth.environments import DEFAULT_ENV, resolve_environment
from platform_auth.exceptions import (
    InvalidArgumentError,
    InvalidParameterError,
    PlatformAuthError,
)
from platform_auth.models import (
    AuthSettings,
    CredentialEntry,
    EndpointSet,
    LoginResult,
    TokenResult,
)
from platform_auth.stores import TokenStore, create_token_store

_UNSET: Any = object()

# Options forwarded from ``login()`` to the authenticator's own ``login()``.
_LOGIN_OPTIONS = ("code", "redirect_uri", "manual", "timeout")

_AUTHENTICATOR_TYPES: dict[str, type[Authenticator]] = {
    cls.kind: cls for cls in (ClientSecret, OwnerPassword, PKCE, SignedJWT)
}


def _first(*values: Any) -> Any:
    """Return the first value that is not ``None``."""
    for value in values:
        if value is not None:
            return value
    return None


def _is_account_list(accounts: Any) -> bool:
    if isinstance(accounts, str):
        return True
    return isinstance(accounts, list) and all(isinstance(a, str) for a in accounts)


class Auth:
    """Authentication engine facade.

    All constructor arguments are optional instance-level defaults; any of
    the credential options may also be passed per call.

    Args:
        base_url: Identity provider base URL. Overrides the environment's.
        client_id: OAuth2 client id.
        client_secret: Client secret (selects :class:`ClientSecret`).
        env: Environment name (``dev``, ``preprod``, ``prod``).
        realm: Identity provider realm. Overrides the environment's.
        username: Username (with *password*, selects :class:`OwnerPassword`).
        password: Password for *username*.
        secret_file: PEM private key path (selects :class:`SignedJWT`).
        scope: OAuth2 scope string.
        interactive_login_timeout: Seconds PKCE waits for the browser.
        token_refresh_threshold: :meth:`get_account` refreshes tokens whose
            remaining lifetime is below this many seconds.
        token_store: A ready :class:`~platform_auth.stores.TokenStore`.
        token_store_type: ``auto``, ``secure``, ``file``, ``memory``, or
            ``None`` for no persistence. Ignored when *token_store* is given.
        token_store_dir: Directory for the file store.
        encryption_key: Fernet key encrypting the file store.
        secure_service_name: Vault service name for the secure store.
        keyring_backend: Keyring backend for the secure store.
        settings: Lowest-precedence defaults, typically from
            :func:`~platform_auth.config.resolve_settings`.
        transport: httpx transport used for every provider request.
        logger: Logger handed to the store and every authenticator.

    Raises:
        InvalidParameterError: If *token_store* is not a ``TokenStore``.
        InvalidValueError: If *token_store_type* is unknown.
        StoreUnavailableError: If an explicit ``secure`` store cannot be built.
        MissingRequiredParameterError: If an explicit ``file`` store has no
            directory.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        env: Optional[str] = None,
        realm: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        secret_file: Optional[str] = None,
        scope: Optional[str] = None,
        interactive_login_timeout: Optional[float] = None,
        token_refresh_threshold: Optional[float] = None,
        token_store: Optional[TokenStore] = None,
        token_store_type: Optional[str] = _UNSET,
        token_store_dir: Optional[str] = None,
        encryption_key: Union[str, bytes, None] = None,
        secure_service_name: Optional[str] = None,
        keyring_backend: Optional[KeyringBackend] = None,
        settings: Optional[AuthSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings or AuthSettings()
        self._log = logger or logging.getLogger(__name__)
        self._transport = transport

        self.base_url = base_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.env = env
        self.realm = realm
        self.username = username
        self.password = password
        self.secret_file = secret_file
        self.scope = scope
        self.interactive_login_timeout = _first(
            interactive_login_timeout, self._settings.interactive_login_timeout
        )
        self.token_refresh_threshold = _first(
            token_refresh_threshold, self._settings.token_refresh_threshold
        )

        if token_store is not None:
            if not isinstance(token_store, TokenStore):
                raise InvalidParameterError(
                    'Expected the token store to be a "TokenStore" instance'
                )
            self.token_store: Optional[TokenStore] = token_store
        else:
            if token_store_type is _UNSET:
                token_store_type = self._settings.token_store_type
            self.token_store = create_token_store(
                token_store_type,
                log=self._log,
                token_store_dir=_first(token_store_dir, self._settings.token_store_dir),
                encryption_key=encryption_key,
                secure_service_name=_first(
                    secure_service_name, self._settings.secure_service_name
                ),
                keyring_backend=keyring_backend,
            )
        if self.token_store is not None:
            self._log.debug("Using %s token store", self.token_store.store_type)

    # ------------------------------------------------------------------ #
    # Option resolution
    # ------------------------------------------------------------------ #

    def apply_defaults(self, options: dict[str, Any]) -> dict[str, Any]:
        """Return *options* completed with instance, settings, and environment defaults.

        Raises:
            InvalidValueError: If the resolved ``env`` is not a known
                environment.
        """
        settings = self._settings
        environment = resolve_environment(
            _first(options.get("env"), self.env, settings.env, DEFAULT_ENV)
        )
        resolved = dict(options)
        resolved.update(
            env=environment.name,
            base_url=_first(
                options.get("base_url"), self.base_url, settings.base_url, environment.base_url
            ),
            realm=_first(options.get("realm"), self.realm, settings.realm, environment.realm),
            client_id=_first(options.get("client_id"), self.client_id, settings.client_id),
            client_secret=_first(options.get("client_secret"), self.client_secret),
            username=_first(options.get("username"), self.username),
            password=_first(options.get("password"), self.password),
            secret_file=_first(options.get("secret_file"), self.secret_file),
            scope=_first(options.get("scope"), self.scope),
            interactive_login_timeout=_first(
                options.get("interactive_login_timeout"), self.interactive_login_timeout
            ),
            token_refresh_threshold=_first(
                options.get("token_refresh_threshold"), self.token_refresh_threshold
            ),
        )
        return resolved

    def _common_options(self, opts: dict[str, Any]) -> dict[str, Any]:
        return {
            "base_url": opts.get("base_url"),
            "client_id": opts.get("client_id"),
            "realm": opts.get("realm"),
            "env": opts.get("env"),
            "endpoints": opts.get("endpoints"),
            "scope": opts.get("scope"),
            "interactive_login_timeout": opts.get("interactive_login_timeout"),
            "transport": self._transport,
            "logger": self._log,
        }

    def create_authenticator(self, opts: dict[str, Any]) -> Authenticator:
        """Select and build the authenticator for resolved options.

        First match wins:

        1. ``authenticator`` -- an explicit instance.
        2. ``username`` and ``password`` -- :class:`OwnerPassword`.
        3. ``client_secret`` -- :class:`ClientSecret`.
        4. ``secret_file`` -- :class:`SignedJWT`.
        5. Otherwise -- interactive :class:`PKCE`.

        Raises:
            InvalidArgumentError: If ``authenticator`` is not an
                :class:`Authenticator`, or the chosen authenticator rejects
                its options.
        """
        explicit = opts.get("authenticator")
        if explicit is not None:
            if not isinstance(explicit, Authenticator):
                raise InvalidArgumentError(
                    "Expected authenticator to be an Authenticator instance"
                )
            return explicit

        common = self._common_options(opts)
        username = opts.get("username")
        password = opts.get("password")
        if isinstance(username, str) and username and isinstance(password, str):
            return OwnerPassword(username=username, password=password, **common)

        client_secret = opts.get("client_secret")
        if isinstance(client_secret, str) and client_secret:
            return ClientSecret(client_secret=client_secret, **common)

        secret_file = opts.get("secret_file")
        if secret_file:
            return SignedJWT(secret_file=secret_file, **common)

        return PKCE(open_browser=opts.get("open_browser"), **common)

    def _authenticator_for(self, entry: CredentialEntry, opts: dict[str, Any]) -> Authenticator:
        """Return an authenticator able to refresh *entry*.

        The configured options are used when they reproduce the entry's hash.
        Otherwise the entry's own client id, base URL and realm are used, so
        an account found by name refreshes without any client configured.
        """
        try:
            authenticator = self.create_authenticator(opts)
        except InvalidArgumentError as exc:
            self._log.debug("Refreshing %s from its stored settings: %s", entry.name, exc)
        else:
            if authenticator.hash == entry.hash:
                return authenticator

        cls = _AUTHENTICATOR_TYPES.get(entry.authenticator)
        if cls is None:
            raise InvalidArgumentError(f"Unknown authenticator kind: {entry.authenticator}")
        common = self._common_options(opts)
        common.update(
            base_url=entry.base_url, realm=entry.realm, client_id=entry.client_id, env=entry.env
        )
        if cls is ClientSecret:
            return ClientSecret(client_secret=opts.get("client_secret"), **common)
        if cls is SignedJWT:
            return SignedJWT(secret_file=opts.get("secret_file"), **common)
        # Refreshing a user grant needs only the client id.
        return PKCE(**common)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def login(self, **options: Any) -> Union[LoginResult, ManualLogin[LoginResult]]:
        """Authenticate and persist the resulting account.

        Args:
            **options: Any constructor credential option, plus
                ``authenticator`` (explicit instance), ``endpoints`` (an
                :class:`~platform_auth.models.EndpointSet` override) and the
                interactive options ``manual``, ``timeout``, ``code``,
                ``redirect_uri`` and ``open_browser``.

        Returns:
            A :class:`~platform_auth.models.LoginResult`, or for
            ``manual=True`` a :class:`~platform_auth.authenticators.ManualLogin`
            whose ``wait()`` resolves to one.

        Raises:
            InvalidArgumentError: If the options are invalid.
            InvalidValueError: If ``env`` is unknown.
            AuthError: If the provider rejects the login.
            TimeoutError_: If an interactive login times out.
            NetworkError: If the provider cannot be reached.
        """
        opts = self.apply_defaults(options)
        authenticator = self.create_authenticator(opts)
        login_options = {k: opts[k] for k in _LOGIN_OPTIONS if opts.get(k) is not None}

        self._log.debug("Logging in with %s authenticator", authenticator.kind)
        result = await authenticator.login(**login_options)
        if isinstance(result, ManualLogin):
            return result.then(lambda token_result: self._complete_login(authenticator, token_result))
        return await self._complete_login(authenticator, result)

    async def _complete_login(
        self, authenticator: Authenticator, result: TokenResult
    ) -> LoginResult:
        entry = authenticator.create_entry(result)
        if self.token_store is not None:
            await self.token_store.set(entry)
        self._log.info("Logged in as %s (%s, %s)", entry.name, entry.base_url, entry.realm)
        return LoginResult(
            access_token=entry.tokens.access_token,
            account=entry,
            user_info=result.auth_info,
        )

    async def get_account(self, **options: Any) -> Optional[CredentialEntry]:
        """Return the stored account matching *options*, refreshing it if due.

        The account is located by ``account_name`` when given, otherwise by
        the hash a matching :meth:`login` would produce. When the entry has
        a refresh token and its access token's remaining lifetime is below
        ``token_refresh_threshold``, the tokens are refreshed and persisted
        first. A failed refresh leaves the entry untouched; check its
        ``expired`` property.

        Concurrent readers of the same entry may each refresh it; the store
        keeps whichever write lands last.

        Returns:
            The entry, or ``None`` if not found or no store is configured.
        """
        if self.token_store is None:
            self._log.debug("Cannot get account, no token store")
            return None

        opts = self.apply_defaults(options)
        account_name = opts.get("account_name")
        if account_name:
            entry = await self.token_store.get(
                account_name=account_name, base_url=options.get("base_url")
            )
        else:
            authenticator = self.create_authenticator(opts)
            entry = await self.token_store.get(account_hash=authenticator.hash)
        if entry is None:
            return None

        threshold = opts["token_refresh_threshold"] or 0.0
        if (
            entry.tokens.refresh_token
            and not entry.refresh_expired
            and entry.tokens.seconds_remaining() < threshold
        ):
            return await self._refresh(entry, opts)
        return entry

    async def _refresh(self, entry: CredentialEntry, opts: dict[str, Any]) -> CredentialEntry:
        self._log.debug("Refreshing tokens for %s", entry.name)
        try:
            authenticator = self._authenticator_for(entry, opts)
            result = await authenticator.refresh(entry)
        except PlatformAuthError as exc:
            self._log.warning("Failed to refresh tokens for %s: %s", entry.name, exc)
            return entry

        refreshed = entry.model_copy(
            update={"tokens": result.tokens, "auth_info": result.auth_info or entry.auth_info}
        )
        assert self.token_store is not None
        await self.token_store.set(refreshed)
        return refreshed

    async def list(self) -> list[CredentialEntry]:
        """Return every stored account (empty when no store is configured)."""
        if self.token_store is None:
            return []
        return await self.token_store.list()

    async def revoke(
        self,
        accounts: Union[str, list[str], None] = None,
        all: bool = False,
        base_url: Optional[str] = None,
    ) -> list[CredentialEntry]:
        """Remove accounts from the store and log them out at the provider.

        Logout is best effort: a failed logout request is logged and the
        remaining entries are still processed.

        Args:
            accounts: An account name or hash, or a list of them.
            all: Revoke every account (optionally only those for *base_url*).
            base_url: Only revoke accounts for this base URL.

        Returns:
            The revoked entries.

        Raises:
            InvalidArgumentError: If neither *all* nor a valid *accounts*
                value is given.
        """
        if not all and not _is_account_list(accounts):
            raise InvalidArgumentError('Expected accounts to be "all" or a list of accounts')
        if self.token_store is None:
            self._log.debug("No token store, nothing to revoke")
            return []
        if not all and not accounts:
            return []

        if all:
            revoked = await self.token_store.clear(base_url)
        else:
            revoked = await self.token_store.delete(accounts, base_url)

        for entry in revoked:
            await self._logout(entry)
        return revoked

    async def _logout(self, entry: CredentialEntry) -> None:
        url = get_endpoints(entry.base_url, entry.realm).logout
        params = {"id_token_hint": entry.tokens.id_token} if entry.tokens.id_token else {}
        try:
            async with create_client(self._transport) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            self._log.warning(
                "Failed to log out %s (%s, %s): %s", entry.name, entry.base_url, entry.realm, exc
            )
            return
        if response.is_success:
            self._log.info(
                "Logged out %s %d (%s, %s)",
                entry.name, response.status_code, entry.base_url, entry.realm,
            )
        else:
            self._log.warning(
                "Failed to log out %s %d (%s, %s)",
                entry.name, response.status_code, entry.base_url, entry.realm,
            )

    def _well_known_url(self, url: Optional[str], options: dict[str, Any]) -> str:
        opts = self.apply_defaults(options)
        if url:
            return url
        return get_endpoints(opts["base_url"], opts["realm"]).well_known

    async def server_info(self, url: Optional[str] = None, **options: Any) -> dict[str, Any]:
        """Fetch the identity provider's OpenID Connect discovery document.

        Args:
            url: Explicit well-known URL. Defaults to the one derived from
                the resolved base URL and realm.
            **options: ``env``, ``base_url`` and ``realm`` overrides.

        Returns:
            The document, unmodified.

        Raises:
            InvalidValueError: If ``env`` is unknown.
            NetworkError: If the document cannot be fetched or parsed.
        """
        return await get_server_info(
            self._well_known_url(url, options), transport=self._transport, log=self._log
        )

    async def discover_endpoints(self, url: Optional[str] = None, **options: Any) -> EndpointSet:
        """Like :meth:`server_info`, normalized into an :class:`EndpointSet`.

        Pass the result as ``endpoints=`` to :meth:`login` to authenticate
        against the advertised endpoints instead of the templated ones.
        """
        well_known = self._well_known_url(url, options)
        doc = await get_server_info(well_known, transport=self._transport, log=self._log)
        return endpoints_from_server_info(doc, well_known)

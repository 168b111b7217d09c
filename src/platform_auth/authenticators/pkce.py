"""OAuth2 Authorization Code flow with PKCE (:rfc:`7636`).

:class:`PKCE` performs the interactive user login:

1. Opens a :class:`~platform_auth.authenticators.callback.CallbackListener`
   on ``127.0.0.1``.
2. Opens the authorization URL in the user's browser (or hands it back in a
   :class:`ManualLogin` when ``manual=True``).
3. Waits for the redirect, checks ``state``, and exchanges the code plus the
   verifier for tokens.

The listener is closed on every exit path: success, timeout, provider error,
and cancellation.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import threading
import webbrowser
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar
from urllib.parse import urlencode

from platform_auth.authenticators.base import Authenticator
from platform_auth.authenticators.callback import CALLBACK_PATH, CallbackListener
from platform_auth.exceptions import AuthError
from platform_auth.models import TokenResult

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_SCOPE = "openid"


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return code_verifier, code_challenge


def open_in_browser(url: str) -> None:
    """Open *url* in the default browser without blocking the caller."""
    threading.Thread(target=webbrowser.open, args=(url,), daemon=True).start()


class ManualLogin(Generic[T]):
    """A started interactive login whose URL the caller opens themselves.

    The callback listener is already bound when this object is returned and
    stays open until :meth:`wait` finishes or :meth:`cancel` is called::

        async with await auth.login(manual=True) as pending:
            print("Open", pending.url)
            result = await pending.wait()

    Attributes:
        url: The authorization URL to open in a browser.
    """

    def __init__(
        self,
        url: str,
        complete: Callable[[], Awaitable[T]],
        close: Callable[[], None],
    ) -> None:
        self.url = url
        self._complete = complete
        self._close = close
        self._cancelled = False

    async def wait(self) -> T:
        """Wait for the redirect and finish the login.

        Raises:
            TimeoutError_: If the redirect does not arrive in time.
            AuthError: If the provider reports an error or the exchange fails.
        """
        try:
            return await self._complete()
        finally:
            self.cancel()

    def cancel(self) -> None:
        """Abandon the login and release the callback listener."""
        if not self._cancelled:
            self._cancelled = True
            self._close()

    def then(self, callback: Callable[[T], Awaitable[U]]) -> ManualLogin[U]:
        """Return a login whose :meth:`wait` also runs *callback* on the result."""

        async def complete() -> U:
            return await callback(await self.wait())

        return ManualLogin(self.url, complete, self.cancel)

    async def __aenter__(self) -> ManualLogin[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.cancel()

    def __repr__(self) -> str:
        return f"ManualLogin(url={self.url!r})"


class PKCE(Authenticator):
    """Interactive user login via the authorization code grant with PKCE.

    Args:
        open_browser: Callable that opens a URL. Defaults to
            :func:`open_in_browser`; tests inject a fake that drives the
            redirect.
        **kwargs: Common options, see
            :class:`~platform_auth.authenticators.base.Authenticator`.
    """

    kind = "pkce"
    interactive = True
    user_identity = True

    def __init__(
        self,
        *,
        open_browser: Optional[Callable[[str], Any]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.code_verifier, self.code_challenge = generate_pkce_pair()
        self._open_browser = open_browser or open_in_browser

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        """Build the URL the user visits to approve the login."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": self.scope or DEFAULT_SCOPE,
            "state": state,
            "code_challenge": self.code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self.endpoints.authorization}?{urlencode(params)}"

    def token_params(self) -> dict[str, str]:
        raise AuthError("The PKCE flow needs an authorization code; call login()")

    async def login(
        self,
        code: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        manual: bool = False,
        timeout: Optional[float] = None,
        **options: Any,
    ) -> Any:
        """Run the interactive login.

        Args:
            code: An authorization code obtained elsewhere. Skips the
                listener and the browser entirely.
            redirect_uri: Redirect URI *code* was issued for. Defaults to a
                loopback ``/callback`` URI.
            manual: Return a :class:`ManualLogin` instead of opening a browser.
            timeout: Seconds to wait for the redirect. Defaults to
                ``interactive_login_timeout``.

        Returns:
            A :class:`~platform_auth.models.TokenResult`, or a
            :class:`ManualLogin` resolving to one when *manual* is set.

        Raises:
            TimeoutError_: If no redirect arrives within *timeout*.
            AuthError: If the provider reports an error, ``state`` does not
                match, or the code exchange is rejected.
            NetworkError: If the token endpoint cannot be reached.
        """
        if code:
            return await self.exchange_code(
                code, redirect_uri or f"http://127.0.0.1{CALLBACK_PATH}"
            )

        wait_for = self.interactive_login_timeout if timeout is None else timeout
        listener = CallbackListener(logger=self._log)
        listener.start()
        try:
            state = secrets.token_urlsafe(16)
            url = self.authorization_url(listener.redirect_uri, state)
        except BaseException:
            listener.close()
            raise

        async def complete() -> TokenResult:
            callback = await listener.wait(wait_for)
            if callback.error:
                message = f"Authorization failed: {callback.error}"
                if callback.error_description:
                    message += f" - {callback.error_description}"
                raise AuthError(message)
            if callback.state != state:
                raise AuthError("Authorization failed: state mismatch in login callback")
            return await self.exchange_code(callback.code or "", listener.redirect_uri)

        if manual:
            return ManualLogin(url, complete, listener.close)

        try:
            self._log.info("Opening browser to %s", url)
            self._open_browser(url)
            return await complete()
        finally:
            listener.close()

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenResult:
        """Exchange an authorization code and this instance's verifier for tokens."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": self.code_verifier,
            **self.client_auth_params(),
        }
        tokens = await self._request_token(data)
        return TokenResult(tokens=tokens, auth_info=await self.get_user_info(tokens))

"""Loopback HTTP listener that receives the authorization redirect.

:class:`CallbackListener` binds ``127.0.0.1`` on an ephemeral port and
serves ``/callback`` until exactly one redirect carrying ``code`` or
``error`` arrives, the deadline passes, or it is closed. The blocking
:class:`~http.server.HTTPServer` loop runs in the default executor so the
event loop stays free while the user is in the browser.
"""

from __future__ import annotations

import asyncio
import html
import logging
import time
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from platform_auth.exceptions import TimeoutError_

CALLBACK_HOST = "127.0.0.1"
CALLBACK_PATH = "/callback"

# Upper bound on a single blocking poll so close() is noticed promptly.
_POLL_INTERVAL = 0.25

_SUCCESS_BODY = "Authorization successful! You can close this window and return to the terminal."


@dataclass
class CallbackResult:
    """Query parameters of the redirect that reached the listener."""

    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


class CallbackListener:
    """Single-use loopback listener for the authorization code redirect.

    Use as an async context manager, or call :meth:`start` and
    :meth:`close` directly::

        async with CallbackListener() as listener:
            url = build_url(listener.redirect_uri)
            result = await listener.wait(timeout=120)

    Args:
        host: Interface to bind.
        port: Port to bind; ``0`` picks a free one.
        path: Path the redirect is expected on. Other paths get a 404.
        logger: Logger to report to.
    """

    def __init__(
        self,
        host: str = CALLBACK_HOST,
        port: int = 0,
        path: str = CALLBACK_PATH,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._host = host
        self._port = port
        self._path = path
        self._log = logger or logging.getLogger(__name__)
        self._server: Optional[HTTPServer] = None
        self._result: Optional[CallbackResult] = None
        self._closed = False

    async def __aenter__(self) -> CallbackListener:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Bind the listening socket."""
        if self._server is not None:
            return
        self._server = HTTPServer((self._host, self._port), self._handler_class())
        self._log.debug("Callback listener bound on %s", self.redirect_uri)

    def close(self) -> None:
        """Release the socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._server is not None:
            self._server.server_close()
            self._log.debug("Callback listener closed")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def port(self) -> int:
        if self._server is None:
            raise RuntimeError("Callback listener has not been started")
        return self._server.server_address[1]

    @property
    def redirect_uri(self) -> str:
        return f"http://{self._host}:{self.port}{self._path}"

    # ------------------------------------------------------------------ #
    # Waiting
    # ------------------------------------------------------------------ #

    async def wait(self, timeout: float) -> CallbackResult:
        """Serve requests until the redirect arrives.

        Args:
            timeout: Seconds to wait for the redirect.

        Returns:
            The redirect's query parameters.

        Raises:
            TimeoutError_: If no redirect arrives within *timeout* seconds,
                or the listener is closed first.
        """
        self.start()
        deadline = time.monotonic() + timeout
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._serve_until, deadline)
        if self._result is None:
            raise TimeoutError_(
                f"Timed out after {timeout:g}s waiting for the login callback"
            )
        return self._result

    def _serve_until(self, deadline: float) -> None:
        server = self._server
        assert server is not None
        while self._result is None and not self._closed:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            server.timeout = min(remaining, _POLL_INTERVAL)
            try:
                server.handle_request()
            except (OSError, ValueError):
                # Socket closed from another thread.
                if self._closed:
                    return
                raise

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        listener = self

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                parsed = urlparse(self.path)
                if parsed.path != listener._path:
                    self._respond(404, "Not found.")
                    return

                params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
                if "error" in params:
                    listener._result = CallbackResult(
                        state=params.get("state"),
                        error=params["error"],
                        error_description=params.get("error_description"),
                    )
                    body = f"Authorization failed: {params['error']}"
                    if params.get("error_description"):
                        body += f" - {params['error_description']}"
                    self._respond(200, body)
                elif "code" in params:
                    listener._result = CallbackResult(
                        code=params["code"], state=params.get("state")
                    )
                    self._respond(200, _SUCCESS_BODY)
                else:
                    self._respond(400, "No authorization code received.")

            def _respond(self, status: int, body: str) -> None:
                self.send_response(status)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(
                    f"<html><body><h2>{html.escape(body)}</h2></body></html>".encode("utf-8")
                )

            def log_message(self, format: str, *args: Any) -> None:
                listener._log.debug("Callback listener: " + format, *args)

        return CallbackHandler

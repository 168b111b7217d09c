"""Shared :class:`httpx.AsyncClient` construction and error-body parsing.

Every outbound request made by the engine (token exchange, userinfo,
discovery, logout) goes through a client created by :func:`create_client`,
so a single ``transport`` option can redirect all provider traffic -- to a
proxy, or to an :class:`httpx.MockTransport` in tests.
"""

from __future__ import annotations

from typing import Optional

import httpx

DEFAULT_TIMEOUT = 30.0
"""Request timeout in seconds for provider calls."""


def create_client(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.AsyncClient:
    """Return a new async client; use it as an ``async with`` context manager."""
    return httpx.AsyncClient(
        transport=transport,
        timeout=timeout,
        follow_redirects=True,
        headers={"Accept": "application/json"},
    )


def error_detail(response: httpx.Response) -> str:
    """Extract a short error message from an error response body.

    Understands the OAuth2 ``error`` / ``error_description`` pair as well as
    generic ``message`` / ``detail`` fields, and falls back to the first 200
    characters of the body.
    """
    try:
        detail = response.json()
    except ValueError:
        return response.text[:200] if response.text else ""

    if isinstance(detail, dict):
        description = detail.get("error_description")
        code = detail.get("error")
        if description and code:
            return f"{description} ({code})"
        return str(
            description or code or detail.get("message") or detail.get("detail") or ""
        )
    return str(detail)

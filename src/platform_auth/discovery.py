"""OpenID Connect discovery.

:func:`get_server_info` fetches the provider's well-known configuration
document and returns it unmodified; :func:`endpoints_from_server_info`
turns it into the :class:`~platform_auth.models.EndpointSet` the
authenticators consume.

Results are never cached here -- callers that want caching keep the
returned dict themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from platform_auth.client import create_client, error_detail
from platform_auth.exceptions import NetworkError
from platform_auth.models import EndpointSet

logger = logging.getLogger(__name__)


async def get_server_info(
    url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    log: Optional[logging.Logger] = None,
) -> dict[str, Any]:
    """Fetch and parse an OpenID Connect discovery document.

    Args:
        url: The well-known URL, typically ending in
            ``/.well-known/openid-configuration``.
        transport: Optional httpx transport override.
        log: Logger to report to (defaults to this module's logger).

    Returns:
        The parsed JSON document, unmodified.

    Raises:
        NetworkError: On transport failure, a non-2xx response, or a body
            that is not a JSON object.
    """
    log = log or logger
    log.debug("Fetching server info: %s", url)
    try:
        async with create_client(transport) as client:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        raise NetworkError(f"Failed to fetch server info from {url}: {exc}") from exc

    if not response.is_success:
        detail = error_detail(response)
        message = f"Failed to fetch server info from {url}: HTTP {response.status_code}"
        raise NetworkError(f"{message}: {detail}" if detail else message)

    try:
        doc = response.json()
    except ValueError as exc:
        raise NetworkError(f"Invalid server info response from {url}: {exc}") from exc

    if not isinstance(doc, dict):
        raise NetworkError(f"Invalid server info response from {url}: expected an object")
    return doc


def endpoints_from_server_info(doc: dict[str, Any], well_known: str) -> EndpointSet:
    """Normalize a discovery document into an :class:`EndpointSet`.

    Args:
        doc: The document returned by :func:`get_server_info`.
        well_known: The URL the document was fetched from.

    Raises:
        NetworkError: If the document lacks ``authorization_endpoint`` or
            ``token_endpoint``.
    """
    for field in ("authorization_endpoint", "token_endpoint"):
        if not doc.get(field):
            raise NetworkError(f"Server info document missing '{field}'")

    return EndpointSet(
        authorization=doc["authorization_endpoint"],
        token=doc["token_endpoint"],
        logout=doc.get("end_session_endpoint") or "",
        userinfo=doc.get("userinfo_endpoint") or "",
        well_known=well_known,
        introspection=doc.get("token_introspection_endpoint")
        or doc.get("introspection_endpoint"),
        jwks=doc.get("jwks_uri"),
    )

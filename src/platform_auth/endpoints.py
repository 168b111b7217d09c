"""OAuth2 endpoint URL templating.

Endpoints follow the Keycloak layout used by the platform's identity
provider::

    {base_url}/auth/realms/{realm}/protocol/openid-connect/auth
    {base_url}/auth/realms/{realm}/protocol/openid-connect/token
    {base_url}/auth/realms/{realm}/.well-known/openid-configuration

:func:`get_endpoints` is pure string templating -- it never touches the
network. Use :func:`~platform_auth.discovery.endpoints_from_server_info`
when the provider's advertised endpoints should win instead.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from platform_auth.exceptions import InvalidArgumentError
from platform_auth.models import EndpointSet


def normalize_base_url(base_url: str) -> str:
    """Strip trailing slashes so equivalent base URLs compare equal."""
    return base_url.rstrip("/")


def get_endpoints(
    base_url: Optional[str],
    realm: Optional[str],
    client_id: Optional[str] = None,
) -> EndpointSet:
    """Derive the endpoint set for a base URL and realm.

    Args:
        base_url: Identity provider base URL, e.g. ``https://login.axway.com``.
        realm: Realm name.
        client_id: Accepted for symmetry with the authenticator options.
            Keycloak endpoints do not depend on it.

    Returns:
        The :class:`~platform_auth.models.EndpointSet`.

    Raises:
        InvalidArgumentError: If *base_url* or *realm* is empty.
    """
    if not base_url or not isinstance(base_url, str):
        raise InvalidArgumentError("Expected base_url to be a non-empty string")
    if not realm or not isinstance(realm, str):
        raise InvalidArgumentError("Expected realm to be a non-empty string")

    realm_url = f"{normalize_base_url(base_url)}/auth/realms/{quote(realm, safe='')}"
    prefix = f"{realm_url}/protocol/openid-connect"
    return EndpointSet(
        authorization=f"{prefix}/auth",
        token=f"{prefix}/token",
        logout=f"{prefix}/logout",
        userinfo=f"{prefix}/userinfo",
        well_known=f"{realm_url}/.well-known/openid-configuration",
        introspection=f"{prefix}/token/introspect",
        jwks=f"{prefix}/certs",
    )

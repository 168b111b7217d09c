"""Client credentials grant authenticated with a shared client secret."""

from __future__ import annotations

from typing import Any, Optional

from platform_auth.authenticators.base import Authenticator
from platform_auth.exceptions import InvalidArgumentError


class ClientSecret(Authenticator):
    """Service-account login using ``grant_type=client_credentials``.

    Args:
        client_secret: The client's secret, sent as a form field on every
            token request.
        **kwargs: Common options, see
            :class:`~platform_auth.authenticators.base.Authenticator`.

    Raises:
        InvalidArgumentError: If *client_secret* is empty.
    """

    kind = "client_secret"

    def __init__(self, *, client_secret: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not client_secret or not isinstance(client_secret, str):
            raise InvalidArgumentError("Expected client_secret to be a non-empty string")
        self.client_secret = client_secret

    def client_auth_params(self) -> dict[str, str]:
        return {"client_id": self.client_id, "client_secret": self.client_secret}

    def token_params(self) -> dict[str, str]:
        params = {"grant_type": "client_credentials", **self.client_auth_params()}
        if self.scope:
            params["scope"] = self.scope
        return params

"""Resource owner password credentials grant."""

from __future__ import annotations

from typing import Any, Optional

from platform_auth.authenticators.base import Authenticator
from platform_auth.exceptions import InvalidArgumentError


class OwnerPassword(Authenticator):
    """User login with a username and password (``grant_type=password``).

    The username is part of :attr:`hash`, so two users of the same client
    keep separate entries.

    Args:
        username: The user's login name.
        password: The user's password. Never stored.
        **kwargs: Common options, see
            :class:`~platform_auth.authenticators.base.Authenticator`.

    Raises:
        InvalidArgumentError: If *username* or *password* is empty.
    """

    kind = "owner_password"
    user_identity = True

    def __init__(
        self,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        if not username or not isinstance(username, str):
            raise InvalidArgumentError("Expected username to be a non-empty string")
        if not password or not isinstance(password, str):
            raise InvalidArgumentError("Expected password to be a non-empty string")
        self.username = username
        self._password = password

    def hash_params(self) -> dict[str, Any]:
        return {"username": self.username}

    def token_params(self) -> dict[str, str]:
        return {
            "grant_type": "password",
            "username": self.username,
            "password": self._password,
            "scope": self.scope or "openid",
            **self.client_auth_params(),
        }

"""JWT bearer grant authenticated with a client private key.

The client proves its identity with a short-lived RS256 assertion signed by
the PEM private key registered for it, instead of a shared secret.
"""

from __future__ import annotations

import time
import uuid
from pathlib import Path
from typing import Any, Optional, Union

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from platform_auth.authenticators.base import Authenticator
from platform_auth.exceptions import InvalidArgumentError

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"

ASSERTION_LIFETIME = 60
"""Seconds a signed assertion stays valid."""


def load_private_key(secret_file: Union[str, Path]) -> rsa.RSAPrivateKey:
    """Read and parse an unencrypted PEM RSA private key.

    Raises:
        InvalidArgumentError: If the file cannot be read or does not hold an
            RSA private key.
    """
    path = Path(secret_file).expanduser()
    try:
        pem = path.read_bytes()
    except OSError as exc:
        raise InvalidArgumentError(f"Cannot read secret file {path}: {exc.strerror or exc}") from exc
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidArgumentError(f"Secret file {path} is not a valid PEM private key") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidArgumentError(f"Secret file {path} must contain an RSA private key")
    return key


class SignedJWT(Authenticator):
    """Service-account login with a signed JWT assertion.

    The key is loaded once, at construction, so a bad ``secret_file`` fails
    before any network activity.

    Args:
        secret_file: Path to the PEM private key.
        **kwargs: Common options, see
            :class:`~platform_auth.authenticators.base.Authenticator`.

    Raises:
        InvalidArgumentError: If *secret_file* is missing, unreadable, or not
            a PEM RSA private key.
    """

    kind = "signed_jwt"

    def __init__(
        self, *, secret_file: Optional[Union[str, Path]] = None, **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        if not secret_file or not isinstance(secret_file, (str, Path)):
            raise InvalidArgumentError("Expected secret_file to be a path to a PEM private key")
        self.secret_file = str(Path(secret_file).expanduser())
        self._private_key = load_private_key(self.secret_file)

    def signed_assertion(self, now: Optional[int] = None) -> str:
        """Return a fresh RS256 assertion for the token endpoint."""
        issued_at = int(time.time()) if now is None else now
        payload = {
            "iss": self.client_id,
            "sub": self.client_id,
            "aud": self.endpoints.token,
            "jti": str(uuid.uuid4()),
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME,
        }
        return jwt.encode(payload, self._private_key, algorithm="RS256")

    def client_auth_params(self) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "client_assertion_type": CLIENT_ASSERTION_TYPE,
            "client_assertion": self.signed_assertion(),
        }

    def token_params(self) -> dict[str, str]:
        params = {"grant_type": JWT_BEARER_GRANT, "assertion": self.signed_assertion()}
        if self.scope:
            params["scope"] = self.scope
        return params

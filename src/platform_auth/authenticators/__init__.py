"""OAuth2 grant strategies.

Each authenticator implements one grant type and produces a
:class:`~platform_auth.models.TokenResult`:

- :class:`ClientSecret` -- ``client_credentials`` with a shared secret.
- :class:`OwnerPassword` -- ``password`` grant for a named user.
- :class:`SignedJWT` -- JWT bearer grant signed with a PEM private key.
- :class:`PKCE` -- interactive authorization code flow with PKCE.
"""

from platform_auth.authenticators.base import Authenticator, decode_claims
from platform_auth.authenticators.callback import CallbackListener, CallbackResult
from platform_auth.authenticators.client_secret import ClientSecret
from platform_auth.authenticators.owner_password import OwnerPassword
from platform_auth.authenticators.pkce import PKCE, ManualLogin, generate_pkce_pair
from platform_auth.authenticators.signed_jwt import SignedJWT

__all__ = [
    "Authenticator",
    "CallbackListener",
    "CallbackResult",
    "ClientSecret",
    "ManualLogin",
    "OwnerPassword",
    "PKCE",
    "SignedJWT",
    "decode_claims",
    "generate_pkce_pair",
]

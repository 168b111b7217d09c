"""platform-auth -- OAuth2 login engine and CLI for the platform identity provider.

The engine selects a grant strategy from the credentials it is given, obtains
an access/refresh token pair, and persists the result in a token store that
falls back from the OS credential vault to a local file to memory.

Typical use::

    from platform_auth import Auth

    auth = Auth(client_id="my-service", client_secret=secret)
    result = await auth.login()
    print(result.access_token)

Modules:
    auth: The :class:`Auth` facade.
    authenticators: Grant strategies (client secret, password, signed JWT, PKCE).
    stores: Token stores (memory, file, secure) and the ``auto`` selection chain.
    endpoints: Endpoint URL templating.
    discovery: OpenID Connect discovery.
    environments: Named environment defaults.
    models: Pydantic models shared across the package.
    config: XDG-aware settings resolution.
    exceptions: Exception hierarchy with error codes and exit codes.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"

from platform_auth.auth import Auth  # noqa: E402
from platform_auth.authenticators import (  # noqa: E402
    PKCE,
    Authenticator,
    ClientSecret,
    ManualLogin,
    OwnerPassword,
    SignedJWT,
)
from platform_auth.endpoints import get_endpoints  # noqa: E402
from platform_auth.environments import ENVIRONMENTS  # noqa: E402
from platform_auth.stores import FileStore, MemoryStore, SecureStore, TokenStore  # noqa: E402

__all__ = [
    "Auth",
    "Authenticator",
    "ClientSecret",
    "ENVIRONMENTS",
    "FileStore",
    "ManualLogin",
    "MemoryStore",
    "OwnerPassword",
    "PKCE",
    "SecureStore",
    "SignedJWT",
    "TokenStore",
    "__version__",
    "get_endpoints",
]

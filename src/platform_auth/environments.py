"""Named identity-provider environments.

Each environment is a shorthand for a default base URL and realm. The
:class:`~platform_auth.auth.Auth` facade resolves ``env`` to one of these
entries before anything else happens, so an unknown name fails fast with
:class:`~platform_auth.exceptions.InvalidValueError`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from platform_auth.exceptions import InvalidValueError


DEFAULT_ENV = "prod"


class Environment(BaseModel):
    """Defaults contributed by a named environment."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    realm: str = "Broker"


ENVIRONMENTS: dict[str, Environment] = {
    "dev": Environment(name="dev", base_url="https://login-preprod.axway.com"),
    "preprod": Environment(name="preprod", base_url="https://login-preprod.axway.com"),
    "prod": Environment(name="prod", base_url="https://login.axway.com"),
}


def resolve_environment(name: str | None) -> Environment:
    """Return the :class:`Environment` for *name* (``prod`` when ``None``).

    Raises:
        InvalidValueError: If *name* is not a known environment.
    """
    env = ENVIRONMENTS.get(name or DEFAULT_ENV)
    if env is None:
        available = ", ".join(sorted(ENVIRONMENTS))
        raise InvalidValueError(
            f"Invalid environment: {name} (expected one of: {available})"
        )
    return env

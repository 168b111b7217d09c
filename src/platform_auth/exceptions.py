"""Exception hierarchy for platform-auth.

All exceptions inherit from :class:`PlatformAuthError`, which carries two
class-level attributes:

* ``code`` -- a machine-readable error kind (``"AUTH_FAILED"``,
  ``"TIMEOUT"``, ...) that callers can switch on without string matching.
* ``exit_code`` -- the process exit code from :mod:`platform_auth.exit_codes`
  used by :func:`platform_auth.app.main`.

Subclass hierarchy::

    PlatformAuthError                (exit 1)
    +-- InvalidArgumentError          INVALID_ARGUMENT            (exit 2)
    +-- InvalidParameterError         INVALID_PARAMETER           (exit 2)
    +-- InvalidValueError             INVALID_VALUE               (exit 2)
    |   +-- ConfigError               INVALID_VALUE               (exit 1)
    +-- MissingRequiredParameterError MISSING_REQUIRED_PARAMETER  (exit 2)
    +-- AuthError                     AUTH_FAILED                 (exit 3)
    +-- TimeoutError_                 TIMEOUT                     (exit 4)
    +-- StoreUnavailableError         STORE_UNAVAILABLE           (exit 5)
    +-- NetworkError                  NETWORK_ERROR               (exit 6)
"""

from platform_auth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_STORE_UNAVAILABLE,
    EXIT_TIMEOUT,
)


class PlatformAuthError(Exception):
    """Base exception for all platform-auth errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    code: str = "ERROR"
    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidArgumentError(PlatformAuthError):
    """Raised for malformed caller input (missing client id, bad account list)."""

    code = "INVALID_ARGUMENT"
    exit_code = EXIT_INVALID_USAGE


class InvalidParameterError(PlatformAuthError):
    """Raised when a structured option has the wrong type (e.g. a non-``TokenStore`` store)."""

    code = "INVALID_PARAMETER"
    exit_code = EXIT_INVALID_USAGE


class InvalidValueError(PlatformAuthError):
    """Raised for an option value outside its allowed set (unknown environment name)."""

    code = "INVALID_VALUE"
    exit_code = EXIT_INVALID_USAGE


class ConfigError(InvalidValueError):
    """Raised when the configuration file cannot be parsed or validated."""

    exit_code = EXIT_GENERIC_FAILURE


class MissingRequiredParameterError(PlatformAuthError):
    """Raised when a store cannot be built because a prerequisite is absent."""

    code = "MISSING_REQUIRED_PARAMETER"
    exit_code = EXIT_INVALID_USAGE


class AuthError(PlatformAuthError):
    """Raised when the identity provider rejects credentials or redirects with an error."""

    code = "AUTH_FAILED"
    exit_code = EXIT_AUTH_FAILURE


class TimeoutError_(PlatformAuthError):
    """Raised when an interactive login does not receive its callback in time.

    Named with a trailing underscore to avoid shadowing the built-in
    ``TimeoutError``.
    """

    code = "TIMEOUT"
    exit_code = EXIT_TIMEOUT


class StoreUnavailableError(PlatformAuthError):
    """Raised when a token store backend cannot be constructed or accessed."""

    code = "STORE_UNAVAILABLE"
    exit_code = EXIT_STORE_UNAVAILABLE


class NetworkError(PlatformAuthError):
    """Raised on transport failures or non-2xx responses from discovery/logout endpoints."""

    code = "NETWORK_ERROR"
    exit_code = EXIT_CONNECTION_ERROR

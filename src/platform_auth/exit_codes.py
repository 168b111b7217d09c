"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~platform_auth.exceptions.PlatformAuthError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from a
network outage without parsing stderr.

Example::

    $ platform-auth login --username bob --password wrong
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- credentials were rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The identity provider rejected the credentials or redirected with an error."""

EXIT_TIMEOUT = 4
"""An interactive login did not complete before its deadline."""

EXIT_STORE_UNAVAILABLE = 5
"""The requested token store backend could not be used."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, non-2xx discovery response)."""

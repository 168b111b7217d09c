"""CLI sub-commands for platform-auth.

* :mod:`~platform_auth.commands.login` -- authenticate and store an account.
* :mod:`~platform_auth.commands.accounts` -- ``list``, ``whoami`` and
  ``logout`` over the stored accounts.
* :mod:`~platform_auth.commands.server_info` -- print the provider's
  discovery document.

Each module exports plain callback functions registered directly on the root
app in :mod:`platform_auth.app`. Shared plumbing lives in
:mod:`~platform_auth.commands.common`.
"""

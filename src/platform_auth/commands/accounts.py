"""Commands over stored accounts: ``list``, ``whoami`` and ``logout``.

Example::

    platform-auth list
    platform-auth whoami me@example.com
    platform-auth logout --all
"""

from __future__ import annotations

from typing import Optional

import typer

from platform_auth.commands.common import (
    ACCOUNT_HEADERS,
    account_row,
    account_summary,
    build_auth,
    run,
)
from platform_auth.exit_codes import EXIT_AUTH_FAILURE, EXIT_INVALID_USAGE
from platform_auth.models import CredentialEntry
from platform_auth.output import (
    document,
    error,
    get_output,
    info,
    success,
    suggest,
    table,
    warning,
)


def list_command(ctx: typer.Context) -> None:
    """List stored accounts."""

    async def fetch() -> list[CredentialEntry]:
        return await build_auth(ctx).list()

    entries = sorted(run(fetch()), key=lambda e: e.name)
    if get_output().is_json:
        document([account_summary(e) for e in entries])
        return
    if not entries:
        info("No authenticated accounts.")
        suggest("Log in: platform-auth login")
        return
    table(ACCOUNT_HEADERS, [account_row(e) for e in entries], title="Accounts")


def whoami_command(
    ctx: typer.Context,
    account: Optional[str] = typer.Argument(
        None, help="Account name. Defaults to the browser login for the client."
    ),
) -> None:
    """Show a stored account, refreshing its tokens when due."""

    async def fetch() -> Optional[CredentialEntry]:
        auth = build_auth(ctx)
        if account:
            return await auth.get_account(account_name=account)
        return await auth.get_account()

    entry = run(fetch())
    if entry is None:
        error(f"Not logged in{f' as {account}' if account else ''}.")
        suggest("Log in: platform-auth login")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)
    if entry.expired:
        warning(f"The access token for {entry.name} has expired and could not be refreshed.")
    document(account_summary(entry))


def logout_command(
    ctx: typer.Context,
    accounts: Optional[list[str]] = typer.Argument(None, help="Account names or hashes."),
    all_accounts: bool = typer.Option(False, "--all", help="Log out of every account."),
) -> None:
    """Revoke stored accounts and log them out at the provider."""
    if not accounts and not all_accounts:
        error("Specify one or more accounts, or --all.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    async def revoke() -> list[CredentialEntry]:
        auth = build_auth(ctx)
        base_url = (ctx.obj or {}).get("base_url")
        if all_accounts:
            return await auth.revoke(all=True, base_url=base_url)
        return await auth.revoke(accounts=list(accounts or []), base_url=base_url)

    revoked = run(revoke())
    if get_output().is_json:
        document([account_summary(e) for e in revoked])
        return
    if not revoked:
        info("No matching accounts.")
        return
    for entry in revoked:
        success(f"Logged out {entry.name}")

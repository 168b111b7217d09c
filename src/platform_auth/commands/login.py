"""``platform-auth login`` -- authenticate and store the account.

The grant is chosen from the options given, exactly as the engine does it:
``--username`` with a password selects the password grant,
``--client-secret`` the client credentials grant, ``--secret-file`` the
signed JWT grant, and no credentials at all the interactive browser login.

Example::

    platform-auth login
    platform-auth --client-id my-service login --client-secret "$SECRET"
    platform-auth login --manual --timeout 300
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from platform_auth.authenticators import ManualLogin
from platform_auth.commands.common import account_summary, build_auth, run
from platform_auth.models import LoginResult
from platform_auth.output import document, get_output, info, success, table


def login_command(
    ctx: typer.Context,
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Username for the password grant."),
    password: Optional[str] = typer.Option(
        None, "--password", help="Password for --username (prompted when omitted)."
    ),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret for a service account."
    ),
    secret_file: Optional[str] = typer.Option(
        None, "--secret-file", help="PEM private key for a service account."
    ),
    manual: bool = typer.Option(
        False, "--manual", help="Print the login URL instead of opening a browser."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds to wait for the browser login."
    ),
) -> None:
    """Log in and store the account."""
    if username and password is None:
        password = typer.prompt("Password", hide_input=True)

    options: dict[str, Any] = {
        "username": username,
        "password": password,
        "client_secret": client_secret,
        "secret_file": secret_file,
        "manual": manual,
        "timeout": timeout,
    }
    result = run(_login(ctx, {k: v for k, v in options.items() if v is not None}))

    account = result.account
    if get_output().is_json:
        document(account_summary(account))
        return
    success(f"Logged in as {account.name}")
    table(
        ["Account", "Authenticator", "Base URL", "Realm"],
        [[account.name, account.authenticator, account.base_url, account.realm]],
    )


async def _login(ctx: typer.Context, options: dict[str, Any]) -> LoginResult:
    auth = build_auth(ctx)
    result = await auth.login(**options)
    if isinstance(result, ManualLogin):
        async with result:
            info("Open this URL in a browser to log in:")
            typer.echo(result.url)
            return await result.wait()
    return result

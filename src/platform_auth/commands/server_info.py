"""``platform-auth server-info`` -- print the provider's discovery document."""

from __future__ import annotations

from typing import Optional

import typer

from platform_auth.commands.common import build_auth, run
from platform_auth.output import document


def server_info_command(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(
        None, "--url", help="Well-known URL. Defaults to the one for the environment and realm."
    ),
) -> None:
    """Show the identity provider's OpenID Connect configuration."""

    async def fetch() -> dict:
        return await build_auth(ctx, token_store_type=None).server_info(url)

    document(run(fetch()))

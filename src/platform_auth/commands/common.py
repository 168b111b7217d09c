"""Plumbing shared by the CLI commands.

:func:`build_auth` turns the global CLI options plus the resolved settings
into an :class:`~platform_auth.auth.Auth`; :func:`run` drives one engine
coroutine and converts :class:`~platform_auth.exceptions.PlatformAuthError`
into a clean exit with the error's exit code.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Coroutine, Optional, TypeVar

import typer

from platform_auth.auth import Auth
from platform_auth.config import get_token_store_dir, resolve_settings
from platform_auth.exceptions import PlatformAuthError
from platform_auth.models import CredentialEntry
from platform_auth.output import error

T = TypeVar("T")

ACCOUNT_HEADERS = ["Account", "Authenticator", "Client ID", "Environment", "Realm", "Expires"]

logger = logging.getLogger("platform_auth.cli")


def build_auth(ctx: typer.Context, **options: Any) -> Auth:
    """Create the facade for a command.

    Global ``--env``, ``--base-url``, ``--realm`` and ``--client-id`` become
    instance defaults; the token store directory defaults to
    ``<data_dir>/tokens``.
    """
    obj = ctx.obj or {}
    settings = resolve_settings()
    token_store_dir = settings.token_store_dir or str(get_token_store_dir())
    return Auth(
        env=obj.get("env"),
        base_url=obj.get("base_url"),
        realm=obj.get("realm"),
        client_id=obj.get("client_id"),
        settings=settings,
        token_store_dir=token_store_dir,
        logger=logger,
        **options,
    )


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* to completion, exiting cleanly on engine errors."""
    try:
        return asyncio.run(coro)
    except PlatformAuthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _format_expiry(value: Optional[datetime]) -> str:
    return value.isoformat(timespec="seconds") if value else ""


def account_row(entry: CredentialEntry) -> list[str]:
    """Table cells for *entry*, matching :data:`ACCOUNT_HEADERS`."""
    expires = _format_expiry(entry.tokens.expires_at)
    if entry.expired:
        expires = f"{expires} (expired)"
    return [
        entry.name,
        entry.authenticator,
        entry.client_id,
        entry.env or "",
        entry.realm,
        expires,
    ]


def account_summary(entry: CredentialEntry) -> dict[str, Any]:
    """JSON-friendly view of *entry* without the token values."""
    return {
        "name": entry.name,
        "hash": entry.hash,
        "authenticator": entry.authenticator,
        "client_id": entry.client_id,
        "env": entry.env,
        "base_url": entry.base_url,
        "realm": entry.realm,
        "expires_at": _format_expiry(entry.tokens.expires_at),
        "expired": entry.expired,
        "refresh_expires_at": _format_expiry(entry.tokens.refresh_expires_at) or None,
        "auth_info": entry.auth_info.model_dump(exclude_none=True) if entry.auth_info else None,
    }

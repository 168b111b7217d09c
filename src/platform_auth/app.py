"""Typer application and CLI entry point for platform-auth.

This module wires together the top-level Typer application and registers the
sub-commands (``login``, ``list``, ``whoami``, ``logout``, ``server-info``).
The commands are thin: each builds an :class:`~platform_auth.auth.Auth` from
the global options and the resolved settings, awaits one engine operation,
and renders the result through :mod:`platform_auth.output`.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under the
data directory.

See Also:
    :mod:`platform_auth.config`: Settings resolution.
    :mod:`platform_auth.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from platform_auth import __version__
from platform_auth.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="platform-auth",
    help="Log in to the platform identity provider and manage stored accounts.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"platform-auth {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool, console: Any) -> None:
    """Route engine logs to stderr; DEBUG with ``--verbose``, warnings otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO; keep it out of the default output.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    env: Optional[str] = typer.Option(
        None, "--env", "-e", help="Environment: dev, preprod, prod."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Identity provider base URL."
    ),
    realm: Optional[str] = typer.Option(None, "--realm", help="Identity provider realm."),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="OAuth2 client id."),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~platform_auth.output.OutputManager` and
    logging from CLI flags, and stores the identity provider options in the
    Typer context so that sub-commands can read them via ``ctx.obj``.
    """
    from platform_auth.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    _setup_logging(verbose, output.stderr)

    ctx.ensure_object(dict)
    ctx.obj["env"] = env
    ctx.obj["base_url"] = base_url
    ctx.obj["realm"] = realm
    ctx.obj["client_id"] = client_id
    ctx.obj["verbose"] = verbose


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from platform_auth.commands.accounts import list_command, logout_command, whoami_command  # noqa: E402
from platform_auth.commands.login import login_command  # noqa: E402
from platform_auth.commands.server_info import server_info_command  # noqa: E402

app.command("login")(login_command)
app.command("list")(list_command)
app.command("whoami")(whoami_command)
app.command("logout")(logout_command)
app.command("server-info")(server_info_command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from platform_auth.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``platform-auth`` console script.

    Unhandled :class:`~platform_auth.exceptions.PlatformAuthError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from platform_auth.exceptions import PlatformAuthError
        from platform_auth.output import error

        if isinstance(exc, PlatformAuthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)

"""Terminal rendering for the platform-auth CLI.

Output follows `clig.dev <https://clig.dev/>`_ stream discipline:

* **stdout** carries the command's result only: an account table, a JSON
  document, the discovery document. Scripts pipe and parse this.
* **stderr** carries everything said *about* the result: status lines,
  warnings, errors, next-step hints, and log records.

The format is picked once per process in
:func:`~platform_auth.app.main_callback`: ``--json`` and ``--plain`` force
one, otherwise Rich is used on an interactive terminal and plain text when
piped. Colour is dropped for ``--no-color``, ``NO_COLOR`` and ``TERM=dumb``.

Commands talk to the module-level helpers (:func:`document`, :func:`table`,
:func:`info`, ...), which forward to the :class:`OutputManager` installed with
:func:`set_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterator, Optional

from rich import box
from rich.console import Console
from rich.json import JSON
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """How results are written to stdout.

    ``AUTO`` is resolved by :class:`OutputManager` and never survives
    construction.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# kind -> (prefix, style, hidden by --quiet)
_NOTICES: dict[str, tuple[str, Optional[str], bool]] = {
    "info": ("", None, True),
    "success": ("", "green", True),
    "suggest": ("→ ", "dim", True),
    "warning": ("Warning: ", "yellow", False),
    "error": ("Error: ", "bold red", False),
}


def stdout_is_tty() -> bool:
    """Whether stdout is an interactive terminal."""
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def color_disabled() -> bool:
    """Whether the environment asks for no colour (``NO_COLOR`` set, or ``TERM=dumb``)."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


class OutputManager:
    """Writes command results to stdout and notices to stderr.

    Args:
        format: Requested format; ``AUTO`` becomes ``RICH`` on a colour TTY
            and ``PLAIN`` otherwise.
        no_color: Strip colour and styling.
        quiet: Hide ``info``, ``success`` and ``suggest`` notices. Warnings,
            errors, and results are always written.
        verbose: Recorded for callers; log verbosity is configured by the app.

    Attributes:
        format: The resolved :class:`OutputFormat`.
        stdout: Rich console bound to stdout.
        stderr: Rich console bound to stderr; the CLI's log handler writes here.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self.no_color = no_color or color_disabled()
        self.quiet = quiet
        self.verbose = verbose
        if format == OutputFormat.AUTO:
            rich_ok = stdout_is_tty() and not self.no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self.format = format

        self.stdout = Console(
            file=sys.stdout,
            no_color=self.no_color,
            force_terminal=format == OutputFormat.RICH,
            highlight=False,
        )
        self.stderr = Console(file=sys.stderr, no_color=self.no_color, highlight=False)

    @property
    def is_json(self) -> bool:
        return self.format == OutputFormat.JSON

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def document(self, data: Any) -> None:
        """Write a JSON-like value: indented JSON, ``key<TAB>value`` lines, or highlighted JSON."""
        if self.format == OutputFormat.JSON:
            self._line(_to_json(data, indent=2))
        elif self.format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self._line(line)
        else:
            self.stdout.print(JSON.from_data(data, default=str))

    def table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows under *headers*.

        JSON mode emits one object per row keyed by header; plain mode emits
        tab-separated lines with a header line first; Rich mode draws a
        table with *title* above it.
        """
        if self.format == OutputFormat.JSON:
            self._line(_to_json([dict(zip(headers, row)) for row in rows], indent=2))
            return
        if self.format == OutputFormat.PLAIN:
            for cells in (headers, *rows):
                self._line("\t".join(cells))
            return

        grid = Table(title=title, box=box.SIMPLE_HEAD, header_style="bold cyan")
        for header in headers:
            grid.add_column(header)
        for row in rows:
            grid.add_row(*row)
        self.stdout.print(grid)

    def _line(self, text: str) -> None:
        print(text, file=self.stdout.file, flush=True)

    # ------------------------------------------------------------------ #
    # Notices (stderr)
    # ------------------------------------------------------------------ #

    def notify(self, kind: str, message: str) -> None:
        """Write a notice of *kind* (``info``, ``success``, ``suggest``, ``warning``, ``error``)."""
        prefix, style, quiet_hides = _NOTICES[kind]
        if quiet_hides and self.quiet:
            return
        if self.no_color:
            print(f"{prefix}{message}", file=self.stderr.file, flush=True)
        else:
            self.stderr.print(Text(f"{prefix}{message}", style=style or ""))


def _to_json(data: Any, indent: Optional[int] = None) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> Iterator[str]:
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                value = _to_json(value)
            yield f"{key}\t{value}"
    elif isinstance(data, list):
        for item in data:
            yield _to_json(item) if isinstance(item, (dict, list)) else str(item)
    else:
        yield str(data)


# ------------------------------------------------------------------ #
# Process-wide manager
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, installing a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests swap stdout between runs)."""
    global _output
    _output = None


def document(data: Any) -> None:
    get_output().document(data)


def table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().table(headers, rows, title)


def info(message: str) -> None:
    get_output().notify("info", message)


def success(message: str) -> None:
    get_output().notify("success", message)


def suggest(message: str) -> None:
    get_output().notify("suggest", message)


def warning(message: str) -> None:
    get_output().notify("warning", message)


def error(message: str) -> None:
    get_output().notify("error", message)

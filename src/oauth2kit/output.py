"""Output formatting for the ``oauth2kit`` command line, with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (tokens, discovery documents, authorize
  URLs). This is what ``$(oauth2kit token show --access-token)`` captures.
* **stderr** -- all diagnostics (status, warnings, errors, suggestions, and
  library log records).
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` flag.

:class:`OutputManager` holds the preferences and the two Rich consoles. It
is created once in :func:`~oauth2kit.app.main_callback` and installed with
:func:`set_output`; the module-level helpers (:func:`info`, :func:`error`,
...) delegate to it.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats. ``AUTO`` picks ``RICH`` on a colour TTY, ``PLAIN`` otherwise."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes every piece of CLI output to the right stream in the right format.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential messages on stderr.
        verbose: Show debug messages and ``DEBUG`` log records on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def install_log_handler(self) -> None:
        """Send records from the ``oauth2kit`` logger hierarchy to stderr.

        Warnings (abandoned discovery, failed background refresh) always
        show; ``--verbose`` lowers the threshold to ``DEBUG`` and ``--quiet``
        raises it to ``ERROR``.
        """
        logger = logging.getLogger("oauth2kit")
        for existing in list(logger.handlers):
            if getattr(existing, "_oauth2kit_cli", False):
                logger.removeHandler(existing)

        if self._no_color:
            handler: logging.Handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        else:
            handler = RichHandler(console=self._stderr, show_time=False, show_path=False)
        handler._oauth2kit_cli = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

        if self._verbose:
            logger.setLevel(logging.DEBUG)
        elif self._quiet:
            logger.setLevel(logging.ERROR)
        else:
            logger.setLevel(logging.WARNING)

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Print a token payload, discovery document or other JSON-like value to stdout."""
        if self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
            return

        document = _to_json(data)
        if self._format == OutputFormat.JSON:
            self.print_data(document)
        else:
            self._stdout.print(Syntax(document, "json", theme="monokai", word_wrap=True))

    def print_data(self, text: str) -> None:
        """Write *text* and a newline to stdout, unformatted."""
        sys.stdout.write(text + "\n")
        sys.stdout.flush()

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows (profiles, stored token fields) to stdout.

        JSON mode emits one object per row keyed by *headers*; plain mode
        emits tab-separated lines with the headers first. *title* is only
        shown by the Rich table.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def _diagnostic(self, plain: str, rich: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(rich)

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, message)

    def success(self, message: str) -> None:
        """Green success message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Yellow warning. Never suppressed."""
        self._diagnostic(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Bold red error. Never suppressed."""
        self._diagnostic(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Dimmed next-step hint. Suppressed by ``--quiet``."""
        if not self._quiet:
            formatted = f"→ {message}"
            self._diagnostic(formatted, f"[dim]{formatted}[/dim]")

    def debug(self, message: str) -> None:
        """Debug message, only with ``--verbose``."""
        if self._verbose:
            self._diagnostic(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> list[str]:
    """Render *data* as lines: ``key<TAB>value`` for dicts, one item per line for lists.

    List values inside a dict are space-joined, which is how ``scope`` is
    written on the wire.
    """
    if isinstance(data, dict):
        lines = []
        for key, value in data.items():
            if isinstance(value, list):
                value = " ".join(map(str, value))
            lines.append(f"{key}\t{'' if value is None else value}")
        return lines
    if isinstance(data, list):
        return [str(item) for item in data]
    return [str(data)]


def mask_secret(value: Optional[str], visible: int = 8) -> str:
    """Shorten a token for display, keeping the first *visible* characters."""
    if not value:
        return "-"
    if len(value) <= visible:
        return value
    return value[:visible] + "..."


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Colour is disabled when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager`."""
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global :class:`OutputManager`. Used by the test suite between tests."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)

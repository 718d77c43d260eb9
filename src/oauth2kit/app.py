"""Typer application and CLI entry point for oauth2kit.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``profile``, ``token``, ``authorize``, ``discover``).

:func:`main` is the ``oauth2kit`` console script. It turns library errors
into exit codes, exits with 130 on Ctrl-C, and saves a crash log under the
data directory for anything unexpected.

See Also:
    :mod:`oauth2kit.config`: Profile resolution.
    :mod:`oauth2kit.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import typer

from oauth2kit import __version__
from oauth2kit.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from oauth2kit.output import OutputFormat


app = typer.Typer(
    name="oauth2kit",
    help="Obtain, refresh and inspect OAuth2 tokens from the command line.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Sub-commands
# ------------------------------------------------------------------ #

from oauth2kit.commands.authorize import authorize_app  # noqa: E402
from oauth2kit.commands.discover import discover_command  # noqa: E402
from oauth2kit.commands.profile import profile_app  # noqa: E402
from oauth2kit.commands.token import token_app  # noqa: E402

app.add_typer(profile_app, name="profile", help="Client profile management.")
app.add_typer(token_app, name="token", help="Token acquisition and management.")
app.add_typer(authorize_app, name="authorize", help="Authorization code flow.")
app.command("discover")(discover_command)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"oauth2kit {__version__}")
        raise typer.Exit()


def _pick_format(json_output: bool, plain_output: bool) -> OutputFormat:
    from oauth2kit.output import OutputFormat

    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Print the oauth2kit version.",
    ),
    profile: Optional[str] = typer.Option(
        None,
        "--profile",
        "-p",
        help="Client profile to act as (overrides OAUTH2KIT_PROFILE).",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print tokens and documents as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only report warnings and errors on stderr."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show HTTP debugging and library logs."
    ),
) -> None:
    """Set up output and logging, then hand the profile choice to the sub-command.

    Args:
        ctx: Typer invocation context. ``ctx.obj["profile"]`` carries the
            ``--profile`` value, which wins over ``OAUTH2KIT_PROFILE``.
        version: Eager flag handled by :func:`_print_version`.
        profile: Profile name override.
        json_output: Select :attr:`OutputFormat.JSON`.
        plain_output: Select :attr:`OutputFormat.PLAIN`.
        no_color: Disable colour and Rich markup.
        quiet: Raise the diagnostic threshold to warnings.
        verbose: Lower the ``oauth2kit`` log threshold to ``DEBUG``.
    """
    from oauth2kit.output import OutputManager, set_output

    manager = OutputManager(
        format=_pick_format(json_output, plain_output),
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(manager)
    manager.install_log_handler()

    ctx.ensure_object(dict)
    ctx.obj.update(profile=profile, verbose=verbose)


def _setup_signal_handlers() -> None:
    """Exit with 130 on Ctrl-C instead of dumping a traceback."""

    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log(exc: Exception) -> Path:
    """Save the traceback of *exc* under ``<data dir>/logs`` and return the file."""
    from oauth2kit.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    header = f"oauth2kit {__version__} on Python {sys.version.split()[0]}\n\n"
    log_file.write_text(header + "".join(traceback.format_exception(exc)), encoding="utf-8")
    return log_file


def main() -> None:
    """Console-script entry point for ``oauth2kit``.

    An :class:`~oauth2kit.exceptions.OAuth2KitError` escaping a command is
    printed and turned into its ``exit_code``. Anything else is a bug: the
    traceback goes to a crash log and the process exits with
    :data:`~oauth2kit.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    from oauth2kit.exceptions import OAuth2KitError
    from oauth2kit.output import error

    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(130)
    except OAuth2KitError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        crash_file = _write_crash_log(exc)
        error(f"oauth2kit crashed. Traceback saved to {crash_file}")
        sys.exit(EXIT_GENERIC_FAILURE)

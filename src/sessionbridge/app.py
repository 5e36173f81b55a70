"""Typer application and console-script entry point.

Registers ``login``, ``logout``, ``status`` and the ``config`` group on one
Typer app. The root callback turns the global flags into an
:class:`~sessionbridge.output.OutputManager` and attaches the log handler
before any sub-command runs.

:func:`main` is what the ``sessionbridge`` script calls. A
:class:`~sessionbridge.exceptions.SessionBridgeError` escaping a command
becomes an error line and that error's exit code; any other exception
leaves a traceback in ``<data dir>/logs/`` and exits with 1.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from types import FrameType
from typing import Optional

import typer

from sessionbridge import __version__
from sessionbridge.commands.config import config_app
from sessionbridge.commands.session import login_command, logout_command, status_command
from sessionbridge.exceptions import SessionBridgeError
from sessionbridge.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE
from sessionbridge.output import (
    OutputFormat,
    OutputManager,
    configure_logging,
    error,
    set_output,
)

app = typer.Typer(
    name="sessionbridge",
    help="Sign in to an AT Protocol identity provider and inspect the session.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("login")(login_command)
app.command("logout")(logout_command)
app.command("status")(status_command)
app.add_typer(config_app, name="config", help="Client settings.")


def _show_version(requested: bool) -> None:
    if requested:
        typer.echo(f"sessionbridge {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        is_eager=True,
        callback=_show_version,
        help="Print the version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON on stdout."),
    plain_output: bool = typer.Option(False, "--plain", help="Emit plain text on stdout."),
    no_color: bool = typer.Option(False, "--no-color", help="Turn off colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug logs."),
) -> None:
    """Install output and logging for this invocation."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)


def _on_sigint(signum: int, frame: Optional[FrameType]) -> None:
    # Raised rather than exiting so a pending prompt can turn it into a
    # cancelled login. asyncio.run leaves a non-default handler alone.
    raise KeyboardInterrupt


def _setup_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log(exc: BaseException) -> str:
    """Save the traceback of *exc* under the data dir; return the file path."""
    from sessionbridge.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        encoding="utf-8",
    )
    return str(log_path)


def main() -> None:
    """Run the CLI. Always ends in ``SystemExit``."""
    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except SessionBridgeError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Traceback saved to {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)

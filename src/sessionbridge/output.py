"""Terminal output and log routing for the sessionbridge CLI.

Anything a caller may want to capture (the rendered session, JSON
documents, the config path) is written to stdout. Status lines, warnings,
errors and log records go to stderr. Rich styling is used only when stdout
is a terminal and colour has not been turned off by ``NO_COLOR``,
``TERM=dumb`` or ``--no-color``.

The CLI installs one :class:`OutputManager` per invocation with
:func:`set_output`; everything else reaches it through :func:`get_output`
or the module-level shortcuts (:func:`info`, :func:`error`, ...).
"""

from __future__ import annotations

import enum
import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, enum.Enum):
    """How stdout data is rendered. ``AUTO`` is resolved at construction."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


@dataclass(frozen=True)
class _Level:
    prefix: str
    markup: str
    survives_quiet: bool = False
    needs_verbose: bool = False


_LEVELS = {
    "info": _Level("", "{}"),
    "success": _Level("", "[green]{}[/green]"),
    "suggest": _Level("→ ", "[dim]→ {}[/dim]"),
    "warning": _Level("Warning: ", "[yellow]Warning:[/yellow] {}", survives_quiet=True),
    "error": _Level("Error: ", "[bold red]Error:[/bold red] {}", survives_quiet=True),
    "debug": _Level(
        "[debug] ", "[dim]\\[debug] {}[/dim]", survives_quiet=True, needs_verbose=True
    ),
}


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` with any value, or a dumb terminal, turns colour off."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class OutputManager:
    """Format preferences and the two consoles of one CLI invocation.

    Args:
        format: ``AUTO`` becomes ``RICH`` on a colour terminal and
            ``PLAIN`` otherwise.
        no_color: Turn off colour and markup everywhere.
        quiet: Hide info, success and suggestion lines. Warnings and
            errors are always shown.
        verbose: Show debug lines and DEBUG log records.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self.no_color = no_color or _should_disable_color()
        self.quiet = quiet
        self.verbose = verbose

        if format == OutputFormat.AUTO:
            colour_tty = _is_tty() and not self.no_color
            format = OutputFormat.RICH if colour_tty else OutputFormat.PLAIN
        self._format = format

        self.stdout_console = Console(
            file=sys.stdout,
            no_color=self.no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self.stderr_console = Console(file=sys.stderr, no_color=self.no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_document(self, data: Any) -> None:
        """Write a JSON-compatible document.

        JSON mode prints it verbatim, rich mode syntax-highlights it, and
        plain mode prints one ``key<TAB>value`` line per top-level key.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps(data))
        elif self._format == OutputFormat.RICH:
            self.stdout_console.print(
                Syntax(_dumps(data), "json", theme="monokai", word_wrap=True)
            )
        elif isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        else:
            self.print_data(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self.stdout_console.print(table)

    # --- stderr ---

    def emit(self, level: str, message: str) -> None:
        """Write a diagnostic line at *level* (a key of ``_LEVELS``)."""
        lvl = _LEVELS[level]
        if lvl.needs_verbose and not self.verbose:
            return
        if self.quiet and not lvl.survives_quiet:
            return
        if self.no_color:
            print(lvl.prefix + message, file=sys.stderr, flush=True)
        else:
            self.stderr_console.print(lvl.markup.format(escape(message)))

    def info(self, message: str) -> None:
        self.emit("info", message)

    def success(self, message: str) -> None:
        self.emit("success", message)

    def suggest(self, message: str) -> None:
        self.emit("suggest", message)

    def warning(self, message: str) -> None:
        self.emit("warning", message)

    def error(self, message: str) -> None:
        self.emit("error", message)

    def debug(self, message: str) -> None:
        self.emit("debug", message)


def configure_logging(output: OutputManager) -> None:
    """Send ``sessionbridge.*`` log records to stderr through Rich.

    Only warnings and errors are shown unless *output* is verbose.
    Replaces a handler installed by an earlier call.
    """
    logger = logging.getLogger("sessionbridge")
    for existing in [h for h in logger.handlers if isinstance(h, RichHandler)]:
        logger.removeHandler(existing)
    logger.addHandler(
        RichHandler(
            console=output.stderr_console,
            show_path=False,
            markup=False,
            rich_tracebacks=output.verbose,
        )
    )
    logger.setLevel(logging.DEBUG if output.verbose else logging.WARNING)


# --- process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
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


def print_document(data: Any) -> None:
    get_output().print_document(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)

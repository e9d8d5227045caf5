"""Terminal output for vidcache: data on stdout, diagnostics on stderr.

Build scripts run ``vidcache --json status`` and parse what comes back, so
the two streams are kept strictly apart (see `clig.dev
<https://clig.dev/>`_):

* **stdout** carries results only: the status table, validation reports,
  JSON documents.
* **stderr** carries everything a person watches while the cache works:
  "Using cached data for playlist ...", page progress, retry warnings,
  fetch errors and the warmup summary.

Rich styling is used when stdout is a terminal; piped output falls back to
plain text. ``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` all switch
colour off.

One :class:`OutputManager` is installed by the CLI callback through
:func:`set_output`. Library code (store, ledger, client, orchestrator)
only calls the module-level helpers such as :func:`info` and
:func:`warning`; when no manager was installed, :func:`get_output`
creates a default one, so embedding vidcache in a build script still
produces readable diagnostics.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

_RULE_WIDTH = 50


class OutputFormat(str, Enum):
    """How data written to stdout is rendered.

    ``AUTO`` becomes ``RICH`` on a colour-capable terminal and ``PLAIN``
    everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes data and diagnostics to the right stream in the right format.

    Args:
        format: Rendering of stdout data; ``AUTO`` is resolved here.
        no_color: Print plain text without Rich markup.
        quiet: Drop informational diagnostics (``info``, ``success``,
            ``suggest``, ``rule``). Warnings and errors always show.
        verbose: Show ``debug`` diagnostics.
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

        if format != OutputFormat.AUTO:
            self._format = format
        elif _is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        rich_stdout = self._format == OutputFormat.RICH
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich_stdout)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write a JSON-compatible value (stats, a validation report) to stdout.

        JSON mode prints indented JSON, plain mode prints ``key<TAB>value``
        lines, rich mode prints highlighted JSON.
        """
        if self._format == OutputFormat.PLAIN:
            self._print_plain(data)
            return
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(text)
        else:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout.

        JSON mode emits a list of header-keyed objects, plain mode emits
        tab-separated lines (header first, no title), rich mode draws a
        table.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps([dict(zip(headers, row)) for row in rows], indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        self._labelled("Warning", "yellow", message)

    def error(self, message: str) -> None:
        self._labelled("Error", "bold red", message)

    def suggest(self, message: str) -> None:
        """Hint at the next command to run, e.g. ``vidcache warmup``."""
        if not self._quiet:
            self._emit(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", style="dim")

    def rule(self, title: str = "") -> None:
        """Separator around the warmup summary."""
        if self._quiet:
            return
        if not self._no_color:
            self._stderr.rule(title, style="cyan")
            return
        line = "=" * _RULE_WIDTH
        self._plain_err(f"{title}\n{line}" if title else line)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _labelled(self, label: str, style: str, message: str) -> None:
        if self._no_color:
            self._plain_err(f"{label}: {message}")
        else:
            self._stderr.print(f"[{style}]{label}:[/{style}] {message}")

    def _emit(self, message: str, style: Optional[str] = None) -> None:
        if self._no_color:
            self._plain_err(message)
        elif style:
            self._stderr.print(f"[{style}]{message}[/{style}]", highlight=False)
        else:
            self._stderr.print(message, highlight=False)

    @staticmethod
    def _plain_err(text: str) -> None:
        print(text, file=sys.stderr, flush=True)

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, (dict, list)):
                    value = json.dumps(value, ensure_ascii=False, default=str)
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (set to anything) or ``TERM=dumb`` turns colour off."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide manager
# ------------------------------------------------------------------ #

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
    """Forget the installed manager (tests call this between cases)."""
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


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)


def rule(title: str = "") -> None:
    get_output().rule(title)

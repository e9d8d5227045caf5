"""Typer application and ``vidcache`` console-script entry point.

The root callback turns the global flags into an
:class:`~vidcache.output.OutputManager` and a ``ctx.obj`` dict (config
path, cache directory, ``--force``, ``--verbose``) that every command in
:mod:`vidcache.commands.cache` reads.

:func:`main` wraps the app: a :class:`~vidcache.exceptions.VidcacheError`
that escapes a command exits with that error's code, Ctrl-C exits 130,
and anything unexpected is written to ``<data dir>/logs/crash-*.log``.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from vidcache import __version__
from vidcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="vidcache",
    help="Manage the local YouTube data cache used by site builds.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"vidcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to vidcache.json (default: ./vidcache.json)."
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache directory (overrides VIDCACHE_CACHE_DIR and config)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print results as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print warnings, errors and results."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show request-level details."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask before clearing the cache."),
) -> None:
    """Install the output manager and share the global options with commands."""
    from vidcache.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj.update(config=config, cache_dir=cache_dir, force=force, verbose=verbose)


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from vidcache.commands.cache import (  # noqa: E402
    clear_command,
    complete_command,
    refresh_command,
    status_command,
    validate_command,
    warmup_command,
)

app.command("status")(status_command)
app.command("clear")(clear_command)
app.command("warmup")(warmup_command)
app.command("refresh")(refresh_command)
app.command("complete")(complete_command)
app.command("validate")(validate_command)


def _install_sigint_handler() -> None:
    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log(exc: Exception) -> str:
    """Save the traceback of *exc* under the data directory; return its path."""
    from vidcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def main() -> None:
    """Run the CLI; always ends in ``SystemExit``."""
    _install_sigint_handler()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from vidcache.exceptions import VidcacheError
        from vidcache.output import error

        if isinstance(exc, VidcacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)

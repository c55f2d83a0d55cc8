"""The ``authweb`` command line.

``app`` is the root Typer application with three entries:

- ``check USERNAME`` -- run a full authentication attempt.
- ``lookup USERNAME`` -- show the account an accepted user would receive.
- ``profile ...`` -- manage stored verifier profiles.

Global options select the profile (``-p``), override the verifier URL
(``--url``) and pick the output style. They are read once in
:func:`main_callback`, which installs the process-wide
:class:`~authweb.output.OutputManager` and passes ``profile``/``url`` to the
commands through ``ctx.obj``.

:func:`main` is the console-script entry point. Decision outcomes leave
through ``typer.Exit`` with their own codes; an :class:`AuthwebError` that
escapes a command is printed and turned into its exit code; anything else
is a bug and leaves a traceback in ``<data_dir>/logs``.
"""

from __future__ import annotations

import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from authweb import __version__
from authweb.commands.check import check_command, lookup_command
from authweb.commands.profile import profile_app
from authweb.exceptions import AuthwebError
from authweb.exit_codes import EXIT_GENERIC_FAILURE
from authweb.output import OutputFormat, OutputManager, error, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="authweb",
    help="Authenticate users against a remote HTTP credential verifier.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.command("check")(check_command)
app.command("lookup")(lookup_command)
app.add_typer(profile_app, name="profile", help="Verifier profile management.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"authweb {__version__}")
        raise typer.Exit()


def _record_format(json_output: bool, plain_output: bool) -> OutputFormat:
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Verifier profile to use."
    ),
    url: Optional[str] = typer.Option(None, "--url", help="Override the profile's verifier URL."),
    json_output: bool = typer.Option(False, "--json", help="Print records as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print records as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide notices and hints."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show gate, request, and evaluation details."
    ),
) -> None:
    """Authenticate users against a remote HTTP credential verifier."""
    set_output(
        OutputManager(
            format=_record_format(json_output, plain_output),
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    ctx.obj = {"profile": profile, "url": url}


def _write_crash_log() -> Path:
    from authweb.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    """Console-script entry point.

    Raises:
        SystemExit: Always; the code is the decision, error, or crash code.
    """
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except AuthwebError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)

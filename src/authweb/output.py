"""Console output for authweb: records on stdout, diagnostics on stderr.

stdout carries only what a wrapper script parses (the decision record, an
account record, the profile table). Everything else goes to stderr through
one of six diagnostic channels:

- ``debug`` (``[debug]`` prefix, only with ``--verbose``): gate steps, the
  request summary, received headers, rejection reasons.
- ``info``, ``success``, ``suggest`` (hidden by ``--quiet``): abstain
  notices, profile changes, next-step hints.
- ``warning``, ``error`` (always shown): incomplete profiles, a missing
  local user, transport and configuration failures.

Diagnostic text often quotes verifier or profile data (header lines,
failure strings, account names), so it is always escaped before Rich sees
it. Callers must never pass credential values.

Colour follows ``NO_COLOR``, ``TERM=dumb`` and ``--no-color``. With colour
off, diagnostics are written as plain lines.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Record format on stdout. ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Channel(NamedTuple):
    prefix: str
    style: str
    quiet_hides: bool
    verbose_only: bool = False


_CHANNELS: dict[str, _Channel] = {
    "debug": _Channel("[debug] ", "dim", quiet_hides=False, verbose_only=True),
    "info": _Channel("", "", quiet_hides=True),
    "success": _Channel("", "green", quiet_hides=True),
    "suggest": _Channel("→ ", "dim", quiet_hides=True),
    "warning": _Channel("Warning: ", "yellow", quiet_hides=False),
    "error": _Channel("Error: ", "bold red", quiet_hides=False),
}


class OutputManager:
    """Route records to stdout and diagnostics to stderr.

    Args:
        format: Record format; ``AUTO`` is resolved once, here.
        no_color: Disable colour and Rich styling.
        quiet: Hide the ``info``, ``success`` and ``suggest`` channels.
        verbose: Show the ``debug`` channel.
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
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # -- stdout --

    def format_response(self, data: Any) -> None:
        """Write one record (a dict, list, or scalar) to stdout."""
        if self._format == OutputFormat.JSON:
            _write_line(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                _write_line(line)
        elif isinstance(data, (dict, list)):
            text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(escape(str(data)))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            _write_line(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                _write_line("\t".join(row))
        else:
            table = Table(title=title, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*(escape(cell) for cell in row))
            self._stdout.print(table)

    # -- stderr --

    def debug(self, message: str) -> None:
        self._emit("debug", message)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def suggest(self, message: str) -> None:
        self._emit("suggest", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def _emit(self, name: str, message: str) -> None:
        channel = _CHANNELS[name]
        if channel.verbose_only and not self._verbose:
            return
        if channel.quiet_hides and self._quiet:
            return
        if self._no_color:
            print(f"{channel.prefix}{message}", file=sys.stderr, flush=True)
            return
        text = f"{escape(channel.prefix)}{escape(message)}"
        if channel.style:
            text = f"[{channel.style}]{text}[/{channel.style}]"
        self._stderr.print(text, highlight=False)


def _write_line(text: str) -> None:
    print(text, file=sys.stdout, flush=True)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{'' if value is None else value}" for key, value in data.items()]
    if isinstance(data, list):
        return [str(item) for item in data]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# -- process-wide manager, installed by the CLI callback --

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager (tests use this between runs)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def debug(message: str) -> None:
    get_output().debug(message)


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

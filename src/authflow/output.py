"""Terminal output for the authflow CLI.

Decoded payloads, curl commands and config dumps go to **stdout**; status
lines, warnings, errors and library log records go to **stderr**, so
``authflow request ... | jq`` always sees clean JSON.

Rendering is chosen once per invocation by :class:`OutputManager`:

* ``--json`` prints payloads as indented JSON.
* ``--plain`` (or a non-TTY stdout, ``NO_COLOR``, ``TERM=dumb``,
  ``--no-color``) prints tab-separated text without markup.
* otherwise payloads are syntax-highlighted through :mod:`rich`.

The manager is installed by :func:`~authflow.app.main_callback` via
:func:`set_output`; commands use the module-level helpers (:func:`error`,
:func:`format_response`, ...).  Library modules never import this module;
they log through :mod:`logging`, and :meth:`OutputManager.install_logging`
attaches a :class:`rich.logging.RichHandler` to the ``authflow`` logger.
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


class OutputFormat(str, Enum):
    """How payloads are rendered on stdout.

    ``AUTO`` becomes ``RICH`` on a colour-capable TTY and ``PLAIN``
    everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# (markup, plain-text prefix) per diagnostic level
_LEVELS: dict[str, tuple[str, str]] = {
    "info": ("{}", ""),
    "success": ("[green]{}[/green]", ""),
    "warning": ("[yellow]Warning:[/yellow] {}", "Warning: "),
    "error": ("[bold red]Error:[/bold red] {}", "Error: "),
    "debug": ("[dim][debug] {}[/dim]", "[debug] "),
}


class OutputManager:
    """Per-invocation output settings and the two Rich consoles.

    Args:
        format: Requested payload format; ``AUTO`` is resolved here.
        no_color: Disable colour and markup.
        quiet: Drop ``info`` and ``success`` lines and silence logging.
        verbose: Show ``debug`` lines and DEBUG log records.
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
        if format is OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
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
        """Render a decoded response payload."""
        if self._format is OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format is OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit("info", message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit("success", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit("debug", message)

    def _emit(self, level: str, message: str) -> None:
        markup, prefix = _LEVELS[level]
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(message))

    def install_logging(self) -> None:
        """Attach a stderr :class:`RichHandler` to the ``authflow`` logger.

        The level is DEBUG with ``--verbose`` and WARNING otherwise, so
        diagnostics records show up by default.  ``--quiet`` removes the
        handler and raises the level to CRITICAL.  Calling it again
        replaces the previous handler.
        """
        log = logging.getLogger("authflow")
        for handler in [h for h in log.handlers if isinstance(h, RichHandler)]:
            log.removeHandler(handler)
        if self._quiet and not self._verbose:
            log.setLevel(logging.CRITICAL)
            return
        log.setLevel(logging.DEBUG if self._verbose else logging.WARNING)
        log.addHandler(RichHandler(console=self._stderr, show_path=False, markup=False))


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> list[str]:
    """Tab-separated rendering: ``key<TAB>value`` for objects, one row per item for arrays."""
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value) or ``TERM=dumb`` turn colour off."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance and shortcuts
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
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)

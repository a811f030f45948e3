"""Operator-facing output.

Release components report progress through `ConsoleProtocol` instead of a
logger. `RichConsole` renders to the terminal; `MockConsole` records what
the operator would have seen so tests can assert on it. Both share the
same message prefixes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

from rich.console import Console
from rich.text import Text

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # git commands, progress payloads
    BOLD = auto()
    HEADER = auto()  # orchestrator phase
    VERBOSE = auto()  # debug mode only

    def __str__(self) -> str:
        return self.name.lower()


_PREFIXES: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
    Style.VERBOSE: "verb",
}

_RICH_STYLES: dict[Style, str] = {
    Style.DEFAULT: "",
    Style.SUCCESS: "green",
    Style.ERROR: "red bold",
    Style.WARNING: "yellow",
    Style.INFO: "cyan",
    Style.DIM: "dim",
    Style.BOLD: "bold",
    Style.HEADER: "blue bold",
    Style.VERBOSE: "magenta dim",
}


def _prefixed(style: Style, message: str) -> str:
    prefix = _PREFIXES.get(style)
    return f"{prefix} {message}" if prefix else message


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Start a new section, one per orchestrator phase."""
        ...

    def verbose(self, message: str) -> None:
        """Diagnostic detail, hidden unless debug output is enabled."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Terminal console. Messages are never parsed as rich markup."""

    def __init__(self, *, debug: bool = False) -> None:
        self._console = Console(highlight=False)
        self._debug = debug

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        if style is Style.VERBOSE and not self._debug:
            return
        self._console.print(Text(message, style=_RICH_STYLES.get(style, "")))

    def _tagged(self, style: Style, message: str) -> None:
        line = Text(_PREFIXES[style], style=_RICH_STYLES[style])
        line.append(f" {message}")
        self._console.print(line)

    def success(self, message: str) -> None:
        self._tagged(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._tagged(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._tagged(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._tagged(Style.INFO, message)

    def header(self, message: str) -> None:
        self._console.print()
        self.print(message, Style.HEADER)

    def verbose(self, message: str) -> None:
        self.print(_prefixed(Style.VERBOSE, message), Style.VERBOSE)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Records every line instead of printing it."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def _record(self, style: Style, message: str) -> None:
        self.outputs.append(OutputRecord(_prefixed(style, message), style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self._record(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._record(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._record(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._record(Style.INFO, message)

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def verbose(self, message: str) -> None:
        self._record(Style.VERBOSE, message)

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style is Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style is Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

"""Console output abstraction.

Release progress (stage titles, skip reasons, streamed package-manager
output, rollback messages) goes through ConsoleProtocol so that services
do not depend on Rich directly and tests can capture what was printed.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # streamed process output
    HEADER = auto()  # stage titles

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Print a stage title."""
        ...

    def skipped(self, title: str, reason: str) -> None:
        """Report a stage that was skipped at run time."""
        ...


class RichConsole:
    """Console implementation using Rich.

    Streamed process output is printed without markup so that brackets in
    npm/yarn logs are not interpreted as Rich tags.
    """

    def __init__(self) -> None:
        from rich.console import Console
        from rich.markup import escape

        self._escape = escape

        self._console = Console(highlight=False)
        self._lock = threading.Lock()
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "") or None
        with self._lock:
            self._console.print(message, style=rich_style, markup=False)

    def success(self, message: str) -> None:
        self._markup(f"[green]OK[/green] {self._escape(message)}")

    def error(self, message: str) -> None:
        self._markup(f"[red bold]error:[/red bold] {self._escape(message)}")

    def warning(self, message: str) -> None:
        self._markup(f"[yellow]warning:[/yellow] {self._escape(message)}")

    def info(self, message: str) -> None:
        self._markup(f"[cyan]info:[/cyan] {self._escape(message)}")

    def header(self, message: str) -> None:
        self._markup(f"[blue bold]>[/blue bold] {self._escape(message)}")

    def skipped(self, title: str, reason: str) -> None:
        title, reason = self._escape(title), self._escape(reason)
        self._markup(f"[dim]- {title} (skipped: {reason})[/dim]")

    def _markup(self, text: str) -> None:
        with self._lock:
            self._console.print(text)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def skipped(self, title: str, reason: str) -> None:
        self.outputs.append(OutputRecord(f"{title} (skipped: {reason})", Style.DIM))

    # Test helpers

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def headers(self) -> list[str]:
        """Stage titles in the order they were announced."""
        return [o.message for o in self.outputs if o.style == Style.HEADER]

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

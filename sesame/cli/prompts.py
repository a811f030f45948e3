"""Interactive prompts backed by typer."""

from __future__ import annotations

from collections.abc import Sequence

import typer

from sesame.output.console import ConsoleProtocol, Style
from sesame.release.prompts import Choice


class TyperPrompter:
    """`Prompter` that asks on the terminal."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def confirm(self, message: str, *, default: bool = False) -> bool:
        return typer.confirm(message, default=default)

    def select[V](self, message: str, choices: Sequence[Choice[V]]) -> V:
        if not choices:
            raise ValueError(f"no choices for: {message}")

        self._console.print(message, Style.BOLD)
        for i, choice in enumerate(choices, start=1):
            self._console.print(f"{i:2}. {choice.label}", Style.DIM)

        while True:
            raw = typer.prompt("Pick a number", default="1")
            try:
                idx = int(raw)
            except ValueError:
                self._console.error("invalid number")
                continue
            if idx < 1 or idx > len(choices):
                self._console.error("out of range")
                continue
            return choices[idx - 1].value

    def text(self, message: str, *, secret: bool = False) -> str:
        value: str = typer.prompt(message, default="", hide_input=secret, show_default=False)
        return value.strip()

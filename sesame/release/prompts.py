"""Interactive choices needed by a release.

The engine never talks to the terminal directly; it asks a `Prompter`.
The CLI supplies a typer-backed implementation, tests a scripted one.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

__all__ = ["Choice", "Prompter", "ScriptedPrompter"]


@dataclass(frozen=True, slots=True)
class Choice[T]:
    value: T
    label: str


class Prompter(Protocol):
    def confirm(self, message: str, *, default: bool = False) -> bool:
        """Ask a yes/no question."""
        ...

    def select[V](self, message: str, choices: Sequence[Choice[V]]) -> V:
        """Pick one of `choices` and return its value."""
        ...

    def text(self, message: str, *, secret: bool = False) -> str:
        """Ask for free text. May return an empty string."""
        ...


def _empty_answers() -> list[object]:
    return []


def _empty_asked() -> list[str]:
    return []


@dataclass
class ScriptedPrompter:
    """Prompter that replays canned answers in order.

    `select` answers are matched against choice values; `text` answers may
    include empty strings to exercise re-prompting.
    """

    answers: list[object] = field(default_factory=_empty_answers)
    asked: list[str] = field(default_factory=_empty_asked)

    def _next(self, message: str) -> object:
        self.asked.append(message)
        if not self.answers:
            raise AssertionError(f"unexpected prompt: {message}")
        return self.answers.pop(0)

    def confirm(self, message: str, *, default: bool = False) -> bool:
        answer = self._next(message)
        if not isinstance(answer, bool):
            raise AssertionError(f"expected bool answer for: {message}")
        return answer

    def select[V](self, message: str, choices: Sequence[Choice[V]]) -> V:
        answer = self._next(message)
        for choice in choices:
            if choice.value == answer:
                return choice.value
        raise AssertionError(f"answer {answer!r} is not a choice for: {message}")

    def text(self, message: str, *, secret: bool = False) -> str:
        answer = self._next(message)
        if not isinstance(answer, str):
            raise AssertionError(f"expected str answer for: {message}")
        return answer

from __future__ import annotations

import pytest

import sesame.cli.prompts as prompts_mod
from sesame.cli.prompts import TyperPrompter
from sesame.output.console import MockConsole
from sesame.release.prompts import Choice


def test_select_retries_until_valid(monkeypatch: pytest.MonkeyPatch) -> None:
    answers = iter(["x", "9", "2"])
    monkeypatch.setattr(prompts_mod.typer, "prompt", lambda *args, **kwargs: next(answers))
    console = MockConsole()

    value = TyperPrompter(console).select(
        "Publish target", [Choice(value="oss", label="OSS"), Choice(value="cdn", label="CDN")]
    )

    assert value == "cdn"
    assert console.find("invalid number")
    assert console.find("out of range")
    assert console.find(" 2. CDN")


def test_text_is_stripped(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}

    def fake_prompt(message: str, **kwargs: object) -> str:
        seen.update(kwargs)
        return "  secret  "

    monkeypatch.setattr(prompts_mod.typer, "prompt", fake_prompt)

    assert TyperPrompter(MockConsole()).text("Token", secret=True) == "secret"
    assert seen["hide_input"] is True

from __future__ import annotations

import pytest

from ._utils import iter_imports, violations

_CLI_STACK = ("typer", "rich", "click", "sesame.cli")


@pytest.mark.parametrize("layer", ["core", "git", "hosting", "platform", "release"])
def test_engine_layers_do_not_import_cli_stack(layer: str) -> None:
    offenders = violations(iter_imports(layer), _CLI_STACK, allowed=set())
    assert not offenders, "Layering violations:\n" + "\n".join(offenders)


def test_rich_is_only_imported_by_console() -> None:
    offenders = violations(iter_imports(), ("rich",), allowed={"output/console.py"})
    assert not offenders, "Direct rich usage:\n" + "\n".join(offenders)


def test_subprocess_goes_through_platform_process() -> None:
    offenders = violations(iter_imports(), ("subprocess",), allowed={"platform/process.py"})
    assert not offenders, "Direct subprocess usage:\n" + "\n".join(offenders)


def test_socketio_is_confined_to_transport() -> None:
    offenders = violations(iter_imports(), ("socketio",), allowed={"release/transport.py"})
    assert not offenders, "Direct socketio usage:\n" + "\n".join(offenders)

"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from sesame.core.errors import ErrorCode
from sesame.output.console import ConsoleProtocol


def resolve_project_dir(project_dir: Path | None, console: ConsoleProtocol) -> Path:
    """Return the directory holding package.json (defaults to the cwd)."""
    raw = project_dir if project_dir is not None else Path.cwd()
    try:
        root = raw.expanduser().resolve()
    except OSError as e:
        exit_with_error(console, f"invalid --project-dir: {e}", ErrorCode.USER_ERROR)

    if not root.is_dir():
        exit_with_error(console, f"not a directory: {root}", ErrorCode.USER_ERROR)
    return root


def exit_with_error(console: ConsoleProtocol, message: str, code: ErrorCode) -> NoReturn:
    console.error(message)
    raise typer.Exit(code=int(code))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)

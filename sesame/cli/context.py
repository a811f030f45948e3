from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from sesame.cli.prompts import TyperPrompter
from sesame.core.config import Config, load_config
from sesame.core.errors import ErrorCode
from sesame.core.result import Err
from sesame.output.console import ConsoleProtocol, RichConsole
from sesame.release.prompts import Prompter


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Options given before the command name, carried in `typer.Context.obj`."""

    debug: bool = False


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    console: ConsoleProtocol
    prompter: Prompter


def global_options(ctx: typer.Context) -> GlobalOptions:
    return ctx.obj if isinstance(ctx.obj, GlobalOptions) else GlobalOptions()


def build_context(*, debug: bool = False) -> CLIContext:
    config_result = load_config(env=os.environ, user_home=Path.home(), debug=debug)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config = config_result.value
    console = RichConsole(debug=config.debug)
    return CLIContext(config=config, console=console, prompter=TyperPrompter(console))

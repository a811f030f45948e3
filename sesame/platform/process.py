"""Blocking subprocess calls that report failure as data.

Every git and scp invocation in sesame goes through `run`. Tests replace
the module-level `run_process` alias in `sesame.git.repository` or
`sesame.release.template` rather than patching `subprocess`.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from sesame.core.result import Err, Ok, Result

__all__ = ["NON_INTERACTIVE_ENV", "ProcessError", "run"]

# A push or pull that needs credentials must fail instead of waiting on a
# terminal prompt nobody will answer.
NON_INTERACTIVE_ENV: Mapping[str, str] = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_MERGE_AUTOEDIT": "no",
}


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not run, exited non-zero, or ran out of time.

    `returncode` is -1 when the process never produced an exit status.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def detail(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or str(self)

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        if self.timed_out:
            return f"{shown} timed out"
        return f"{shown} failed (exit {self.returncode})"


def _environment(overrides: Mapping[str, str] | None) -> dict[str, str]:
    env = dict(os.environ)
    env.update(NON_INTERACTIVE_ENV)
    if overrides:
        env.update(overrides)
    return env


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run `cmd` in `cwd` and return its stdout.

    `env` entries are layered over the current environment and the
    non-interactive git settings.
    """
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=_environment(env),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(
            ProcessError(
                command=command,
                returncode=-1,
                stdout=partial,
                stderr=f"no answer after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(ProcessError(command=command, returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode == 0:
        return Ok(proc.stdout)
    return Err(
        ProcessError(
            command=command,
            returncode=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )
    )

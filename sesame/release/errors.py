"""Failure taxonomy for a release run.

Each failure is a small frozen dataclass; `ReleaseFailure` is their union
and is rendered with `match` (see `sesame.output.errors`). Negative build
outcomes are not failures: they are `BuildOutcome` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sesame.git.repository import GitError

__all__ = [
    "AuthError",
    "ConflictError",
    "GitFailure",
    "ManifestError",
    "NetworkError",
    "OperatorAbort",
    "PhaseFailure",
    "ReleaseFailure",
    "git_failure",
    "network_failure",
]


@dataclass(frozen=True, slots=True)
class ManifestError:
    """package.json is missing, unreadable or incomplete."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ConflictError:
    """The working tree has unresolved merge conflicts."""

    paths: tuple[str, ...]
    hint: str | None = "Resolve the conflicts manually, commit, then re-run."

    @property
    def message(self) -> str:
        return f"working tree has {len(self.paths)} conflicted path(s): {', '.join(self.paths)}"


@dataclass(frozen=True, slots=True)
class AuthError:
    """Token missing/invalid or the remote repository could not be created."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class NetworkError:
    """A push or remote listing failed."""

    operation: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class GitFailure:
    """A local git mutation failed (checkout, merge, commit, tag, stash)."""

    command: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class OperatorAbort:
    """The operator declined a confirmation that gates the run."""

    message: str
    hint: str | None = None


ReleaseFailure = (
    ManifestError | ConflictError | AuthError | NetworkError | GitFailure | OperatorAbort
)


@dataclass(frozen=True, slots=True)
class PhaseFailure:
    """A fatal failure tagged with the orchestrator phase it happened in."""

    phase: str
    error: ReleaseFailure

    @property
    def message(self) -> str:
        return f"{self.phase}: {self.error.message}"

    @property
    def hint(self) -> str | None:
        return self.error.hint


def git_failure(e: GitError) -> GitFailure:
    return GitFailure(command=f"git {e.command}", message=e.message)


def network_failure(e: GitError) -> NetworkError:
    return NetworkError(operation=f"git {e.command}", message=e.message)

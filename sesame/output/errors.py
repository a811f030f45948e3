"""Error presentation utilities.

Failure formatting and exit code mapping for the release command.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sesame.core.errors import ErrorCode
from sesame.output.console import Style
from sesame.release.errors import (
    AuthError,
    ConflictError,
    GitFailure,
    ManifestError,
    NetworkError,
    OperatorAbort,
    PhaseFailure,
    ReleaseFailure,
)

if TYPE_CHECKING:
    from sesame.output.console import ConsoleProtocol

__all__ = ["print_release_failure", "release_exit_code"]


def print_release_failure(failure: PhaseFailure, console: ConsoleProtocol) -> None:
    """Print `phase: cause`, the failure details and its hint."""
    match failure.error:
        case ConflictError(paths=paths):
            console.error(f"{failure.phase}: working tree has unresolved conflicts")
            for path in paths:
                console.print(f"  {path}", Style.ERROR)
        case ManifestError(message=message, path=path):
            console.error(f"{failure.phase}: {message}")
            if path is not None:
                console.print(f"  {path}", Style.DIM)
        case GitFailure(command=command, message=message) | NetworkError(
            operation=command, message=message
        ):
            console.error(f"{failure.phase}: {command} failed")
            if message:
                console.print(message, Style.DIM)
        case AuthError(message=message) | OperatorAbort(message=message):
            console.error(f"{failure.phase}: {message}")

    if failure.hint:
        console.print(f"hint: {failure.hint}", Style.DIM)


def release_exit_code(error: ReleaseFailure) -> int:
    """Get exit code for a release failure."""
    match error:
        case ManifestError() | OperatorAbort():
            return int(ErrorCode.USER_ERROR)
        case ConflictError():
            return int(ErrorCode.CONFLICT_ERROR)
        case AuthError():
            return int(ErrorCode.AUTH_ERROR)
        case NetworkError():
            return int(ErrorCode.NETWORK_ERROR)
        case GitFailure():
            return int(ErrorCode.ENV_ERROR)

"""Process exit codes.

The values are returned by the `sesame` CLI and should remain stable:
- 0: Success
- 1: User error (bad manifest, invalid build command, aborted by operator)
- 2: Environment error (home dir, config)
- 3: Build error (reserved; a negative build outcome is reported, not an exit status)
- 4: Network error (push or remote listing failed)
- 5: I/O error (cache or manifest could not be written)
- 6: Conflict error (working tree has unresolved conflicts)
- 7: Auth error (token missing/invalid, repository could not be created)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    CONFLICT_ERROR = 6
    AUTH_ERROR = 7

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

"""Git operations.

Usage:
    from sesame.git import Repository

    repo = Repository(Path("/path/to/project"))
    status = repo.status()
    if status.is_ok() and not status.unwrap().has_changes:
        print("clean")
"""

from sesame.git.repository import (
    GitError,
    RepoStatus,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitError",
    "RepoStatus",
    "Repository",
    "StatusEntry",
]

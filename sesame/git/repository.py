"""Git working-copy abstraction.

`Repository` wraps the git CLI for the operations a release needs:
status, branches, stash, tags, pull/push and remote listing. Every method
returns a Result; nothing raises on a failed git command.

Usage:
    repo = Repository(Path("/path/to/project"))

    match repo.status():
        case Ok(status):
            if status.has_conflicts:
                print(", ".join(sorted(status.conflicted)))
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from sesame.core.result import Err, Ok, Result
from sesame.platform.process import ProcessError
from sesame.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})

# Unmerged XY codes from `git status --porcelain`.
_CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

__all__ = [
    "GitError",
    "RepoStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "push origin dev/1.0.0")
        message: Error message (git's stderr when available)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single `git status --porcelain` entry.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??", "UU")
        path: File path; for renames the destination path
        orig_path: Source path of a rename, None otherwise
    """

    xy: str
    path: str
    orig_path: str | None = None

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"

    @property
    def is_conflicted(self) -> bool:
        return self.xy in _CONFLICT_CODES

    @property
    def is_staged(self) -> bool:
        return not self.is_untracked and self.xy[0] != " "

    def pretty_xy(self) -> str:
        """Format XY with dots for spaces (". M" instead of " M")."""
        return self.xy.replace(" ", ".")


@dataclass(frozen=True, slots=True)
class RepoStatus:
    """Snapshot of the working tree.

    Never cache a RepoStatus across a mutating git call; fetch a new one.
    """

    branch: str
    upstream: str | None = None
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    def _paths(self, predicate: str) -> frozenset[str]:
        out: set[str] = set()
        for e in self.entries:
            if e.is_conflicted or e.is_untracked:
                continue
            if predicate in e.xy:
                out.add(e.path)
        return frozenset(out)

    @property
    def conflicted(self) -> frozenset[str]:
        return frozenset(e.path for e in self.entries if e.is_conflicted)

    @property
    def not_added(self) -> frozenset[str]:
        return frozenset(e.path for e in self.entries if e.is_untracked)

    @property
    def created(self) -> frozenset[str]:
        return self._paths("A")

    @property
    def deleted(self) -> frozenset[str]:
        return self._paths("D")

    @property
    def modified(self) -> frozenset[str]:
        return self._paths("M")

    @property
    def renamed(self) -> frozenset[str]:
        return self._paths("R")

    @property
    def staged(self) -> frozenset[str]:
        return frozenset(e.path for e in self.entries if e.is_staged and not e.is_conflicted)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicted)

    @property
    def has_changes(self) -> bool:
        """True if any of not_added/created/deleted/modified/renamed is non-empty."""
        return bool(self.not_added or self.created or self.deleted or self.modified or self.renamed)

    def paths_to_stage(self) -> list[str]:
        """Every changed path, rename sources included, in a stable order."""
        paths: set[str] = set()
        for e in self.entries:
            if e.is_conflicted:
                continue
            paths.add(e.path)
            if e.orig_path:
                paths.add(e.orig_path)
        return sorted(paths)


class Repository:
    """Git working copy.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this directory is already a git repository."""
        return (self.path / ".git").exists()

    # -- inspection ---------------------------------------------------------

    def status(self) -> Result[RepoStatus, GitError]:
        """Run `git status --porcelain=v1 -b -z` and parse the output."""
        result = self._git(["status", "--porcelain=v1", "-b", "-z"])
        if isinstance(result, Err):
            return result
        return Ok(self._parse_status(result.value))

    def current_branch(self) -> str | None:
        """Current branch name, None on detached HEAD or error."""
        result = self._git(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def local_branches(self) -> Result[list[str], GitError]:
        result = self._git(["branch", "--format=%(refname:short)"])
        if isinstance(result, Err):
            return result
        return Ok(_lines(result.value))

    def stash_list(self) -> Result[list[str], GitError]:
        result = self._git(["stash", "list"])
        if isinstance(result, Err):
            return result
        return Ok(_lines(result.value))

    def tags(self) -> Result[list[str], GitError]:
        result = self._git(["tag", "--list"])
        if isinstance(result, Err):
            return result
        return Ok(_lines(result.value))

    def remotes(self) -> Result[list[str], GitError]:
        result = self._git(["remote"])
        if isinstance(result, Err):
            return result
        return Ok(_lines(result.value))

    def remote_url(self, remote: str) -> Result[str, GitError]:
        result = self._git(["remote", "get-url", remote])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def list_remote_refs(self, remote: str) -> Result[str, GitError]:
        """Raw `git ls-remote --refs <remote>` output."""
        return self._git(["ls-remote", "--refs", remote])

    # -- local mutation -----------------------------------------------------

    def init(self) -> Result[str, GitError]:
        return self._git(["init"])

    def add_remote(self, name: str, url: str) -> Result[str, GitError]:
        return self._git(["remote", "add", name, url])

    def checkout(self, branch: str) -> Result[str, GitError]:
        return self._git(["checkout", branch])

    def checkout_new(self, branch: str) -> Result[str, GitError]:
        """Create `branch` from HEAD and switch to it."""
        return self._git(["checkout", "-b", branch])

    def add(self, paths: list[str]) -> Result[str, GitError]:
        """Stage paths, including deletions."""
        if not paths:
            return Ok("")
        return self._git(["add", "-A", "--", *paths])

    def commit(self, message: str) -> Result[str, GitError]:
        return self._git(["commit", "-m", message])

    def stash_pop(self) -> Result[str, GitError]:
        return self._git(["stash", "pop"])

    def merge(self, branch: str) -> Result[str, GitError]:
        """Merge `branch` into the current branch (ff or merge commit)."""
        return self._git(["merge", "--no-edit", branch])

    def create_tag(self, tag: str) -> Result[str, GitError]:
        return self._git(["tag", tag])

    def delete_tag(self, tag: str) -> Result[str, GitError]:
        return self._git(["tag", "-d", tag])

    def delete_branch(self, branch: str) -> Result[str, GitError]:
        return self._git(["branch", "-d", branch])

    # -- remote mutation ----------------------------------------------------

    def pull(
        self,
        remote: str,
        branch: str,
        *,
        allow_unrelated_histories: bool = False,
    ) -> Result[str, GitError]:
        """Pull `remote/branch` into the current branch with a merge."""
        args = ["pull", "--no-rebase", "--no-edit"]
        if allow_unrelated_histories:
            args.append("--allow-unrelated-histories")
        return self._git([*args, remote, branch])

    def push(self, remote: str, branch: str) -> Result[str, GitError]:
        return self._git(["push", remote, branch])

    def push_tags(self, remote: str) -> Result[str, GitError]:
        return self._git(["push", remote, "--tags"])

    def delete_remote_tag(self, remote: str, tag: str) -> Result[str, GitError]:
        return self._git(["push", remote, f":refs/tags/{tag}"])

    def delete_remote_branch(self, remote: str, branch: str) -> Result[str, GitError]:
        return self._git(["push", remote, "--delete", branch])

    # -- internals ----------------------------------------------------------

    def _git(self, args: list[str]) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Ok(stdout):
                return Ok(stdout)
            case Err(e):
                return Err(_to_git_error(args, e))

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_status(self, output: str) -> RepoStatus:
        """Parse `git status --porcelain=v1 -b -z` output.

        Records are NUL-terminated and paths are never quoted. A rename or
        copy record is followed by a second record holding the source path.
        """
        records = output.split("\0")
        branch = ""
        upstream: str | None = None
        entries: list[StatusEntry] = []

        i = 0
        while i < len(records):
            record = records[i]
            i += 1
            if record.startswith("## "):
                branch, upstream = self._parse_branch_line(record)
                continue
            if len(record) < 4:
                continue
            xy = record[:2]
            orig_path: str | None = None
            if ("R" in xy or "C" in xy) and i < len(records):
                orig_path = records[i]
                i += 1
            entries.append(StatusEntry(xy=xy, path=record[3:], orig_path=orig_path))

        return RepoStatus(branch=branch, upstream=upstream, entries=tuple(entries))

    def _parse_branch_line(self, line: str) -> tuple[str, str | None]:
        """Parse branch line: ## branch...upstream [info]"""
        s = line[2:].strip()
        s = s.split(" [", 1)[0].strip()
        if s.startswith("No commits yet on "):
            s = s.removeprefix("No commits yet on ")
        if "..." in s:
            left, right = s.split("...", 1)
            return (left.strip(), right.strip())
        return (s, None)


def _lines(output: str) -> list[str]:
    return [ln.strip() for ln in output.splitlines() if ln.strip()]


def _to_git_error(args: list[str], e: ProcessError) -> GitError:
    return GitError(
        command=" ".join(args[:4]),
        message=e.detail,
        returncode=e.returncode,
    )

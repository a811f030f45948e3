"""Working-copy synchronization.

`SyncEngine` owns every git mutation of the commit phase. Each mutating
step re-reads the working-tree status first and refuses to run while a
conflicted path exists.
"""

from __future__ import annotations

from enum import StrEnum

from sesame.core.result import Err, Ok, Result
from sesame.git.repository import RepoStatus, Repository
from sesame.output.console import ConsoleProtocol, Style
from sesame.release.errors import (
    ConflictError,
    GitFailure,
    NetworkError,
    ReleaseFailure,
    git_failure,
    network_failure,
)
from sesame.release.model import RefKind, ReleaseContext
from sesame.release.prompts import Prompter
from sesame.release.refs import parse_remote_refs, remote_has_head
from sesame.release.semver import SemVer


class PullOutcome(StrEnum):
    MERGED = "merged"
    # Pull failed (network, refused merge); the run continues and the next
    # conflict gate decides whether the tree is usable.
    FAILED_CONTINUED = "failed_continued"


class SyncEngine:
    def __init__(
        self,
        *,
        repo: Repository,
        context: ReleaseContext,
        console: ConsoleProtocol,
        prompter: Prompter,
        release_branch: str = "master",
    ) -> None:
        self._repo = repo
        self._ctx = context
        self._console = console
        self._prompter = prompter
        self._release_branch = release_branch

    @property
    def remote(self) -> str:
        return self._ctx.remote_name

    def _status(self) -> Result[RepoStatus, GitFailure]:
        return self._repo.status().map_err(git_failure)

    def ensure_no_conflicts(self) -> Result[None, ReleaseFailure]:
        """Fail with ConflictError if any path is conflicted."""
        self._console.verbose("checking for conflicts")
        status = self._status()
        if isinstance(status, Err):
            return status
        if status.value.has_conflicts:
            paths = tuple(sorted(status.value.conflicted))
            for path in paths:
                self._console.print(f"  conflicted: {path}", Style.ERROR)
            return Err(ConflictError(paths=paths))
        return Ok(None)

    def conflicts_or(self, failure: ReleaseFailure) -> Err[ReleaseFailure]:
        """Explain a failed git mutation.

        Stash pop and merge exit non-zero when they leave conflicts behind;
        in that case the ConflictError naming the paths is returned instead
        of `failure`.
        """
        gate = self.ensure_no_conflicts()
        if isinstance(gate, Err):
            return gate
        return Err(failure)

    def resolve_stash(self) -> Result[bool, ReleaseFailure]:
        """Offer to pop the stash. Returns True when an entry was popped."""
        stashes = self._repo.stash_list()
        if isinstance(stashes, Err):
            return Err(git_failure(stashes.error))
        if not stashes.value:
            return Ok(False)

        self._console.info(f"{len(stashes.value)} stash entr(y/ies) found")
        if not self._prompter.confirm("Pop the latest stash entry?", default=False):
            self._console.print("stash left untouched", Style.DIM)
            return Ok(False)

        self._console.print("git stash pop", Style.DIM)
        popped = self._repo.stash_pop()
        if isinstance(popped, Err):
            return self.conflicts_or(git_failure(popped.error))
        self._console.success("stash popped")
        return Ok(True)

    def ensure_clean(self) -> Result[bool, ReleaseFailure]:
        """Stage and commit every pending change.

        Returns:
            Ok(True) if a commit was created, Ok(False) if the tree was clean.
        """
        gate = self.ensure_no_conflicts()
        if isinstance(gate, Err):
            return gate

        status = self._status()
        if isinstance(status, Err):
            return status
        if not status.value.has_changes:
            return Ok(False)

        paths = status.value.paths_to_stage()
        self._console.verbose(f"staging {len(paths)} path(s)")
        added = self._repo.add(paths)
        if isinstance(added, Err):
            return Err(git_failure(added.error))

        message = ""
        while not message:
            message = self._prompter.text("Commit message").strip()

        self._console.print(f'git commit -m "{message}"', Style.DIM)
        committed = self._repo.commit(message)
        if isinstance(committed, Err):
            return Err(git_failure(committed.error))
        self._console.success("local commit created")
        return Ok(True)

    def switch_to(self, branch: str) -> Result[None, ReleaseFailure]:
        """Check out `branch`, creating it from HEAD when it does not exist locally."""
        branches = self._repo.local_branches()
        if isinstance(branches, Err):
            return Err(git_failure(branches.error))

        if branch in branches.value:
            self._console.print(f"git checkout {branch}", Style.DIM)
            result = self._repo.checkout(branch)
        else:
            self._console.print(f"git checkout -b {branch}", Style.DIM)
            result = self._repo.checkout_new(branch)
        if isinstance(result, Err):
            return Err(git_failure(result.error))
        self._console.success(f"on branch {branch}")
        return Ok(None)

    def merge_remote(
        self,
        branch: str,
        *,
        allow_unrelated_histories: bool = False,
    ) -> Result[PullOutcome, ReleaseFailure]:
        """Pull `<remote>/<branch>` into the current branch, best effort."""
        gate = self.ensure_no_conflicts()
        if isinstance(gate, Err):
            return gate

        self._console.print(f"git pull {self.remote} {branch}", Style.DIM)
        pulled = self._repo.pull(
            self.remote, branch, allow_unrelated_histories=allow_unrelated_histories
        )
        if isinstance(pulled, Err):
            self._console.warning(f"pull {self.remote}/{branch} failed: {pulled.error.message}")
            return Ok(PullOutcome.FAILED_CONTINUED)
        self._console.success(f"merged {self.remote}/{branch}")
        return Ok(PullOutcome.MERGED)

    def push(self, branch: str) -> Result[None, ReleaseFailure]:
        gate = self.ensure_no_conflicts()
        if isinstance(gate, Err):
            return gate

        self._console.print(f"git push {self.remote} {branch}", Style.DIM)
        pushed = self._repo.push(self.remote, branch)
        if isinstance(pushed, Err):
            return Err(network_failure(pushed.error))
        self._console.success(f"pushed {branch}")
        return Ok(None)

    def _remote_listing(self) -> Result[str, NetworkError]:
        return self._repo.list_remote_refs(self.remote).map_err(network_failure)

    def list_remote_versions(self, kind: RefKind) -> Result[list[SemVer], NetworkError]:
        """Versions of remote release tags (TAG) or dev branches (BRANCH), newest first."""
        listing = self._remote_listing()
        if isinstance(listing, Err):
            return listing
        return Ok([ref.version for ref in parse_remote_refs(listing.value, kind)])

    def has_remote_branch(self, branch: str) -> Result[bool, NetworkError]:
        listing = self._remote_listing()
        if isinstance(listing, Err):
            return listing
        return Ok(remote_has_head(listing.value, branch))

    def commit_sequence(self) -> Result[None, ReleaseFailure]:
        """Reconcile local and remote state and push the development branch.

        Order: conflicts, stash, conflicts, dirty commit, switch branch,
        merge remote release branch, conflicts, merge remote dev branch (if
        any), conflicts, push.
        """
        branch = self._ctx.branch_name
        if branch is None:
            raise RuntimeError("commit_sequence requires a negotiated branch")

        steps = (
            self.ensure_no_conflicts,
            self.resolve_stash,
            self.ensure_no_conflicts,
            self.ensure_clean,
            lambda: self.switch_to(branch),
            lambda: self.merge_remote(self._release_branch),
            self.ensure_no_conflicts,
        )
        for step in steps:
            result = step()
            if isinstance(result, Err):
                return result

        exists = self.has_remote_branch(branch)
        if isinstance(exists, Err):
            return exists
        if exists.value:
            merged = self.merge_remote(branch)
            if isinstance(merged, Err):
                return merged
            gate = self.ensure_no_conflicts()
            if isinstance(gate, Err):
                return gate
        else:
            self._console.print(f"no remote branch {branch} yet", Style.DIM)

        return self.push(branch)

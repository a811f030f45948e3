"""Release promotion: tag, merge into the release branch, drop the dev branch.

Every step is fatal on failure and stops the remaining ones. A run that
stops half way (tag pushed, branch still present) is reported, not
retried; re-running is safe because tagging replaces existing tags.
"""

from __future__ import annotations

from sesame.core.result import Err, Ok, Result
from sesame.git.repository import Repository
from sesame.output.console import ConsoleProtocol, Style
from sesame.release.errors import ReleaseFailure, git_failure, network_failure
from sesame.release.model import RefKind, release_tag
from sesame.release.semver import parse_version
from sesame.release.sync import SyncEngine


class PromotionEngine:
    def __init__(
        self,
        *,
        repo: Repository,
        sync: SyncEngine,
        console: ConsoleProtocol,
        release_branch: str = "master",
    ) -> None:
        self._repo = repo
        self._sync = sync
        self._console = console
        self._release_branch = release_branch

    @property
    def remote(self) -> str:
        return self._sync.remote

    def retag_release(self, version: str) -> Result[None, ReleaseFailure]:
        """Point `release/<version>` at HEAD, locally and on the remote."""
        tag = release_tag(version)

        remote_versions = self._sync.list_remote_versions(RefKind.TAG)
        if isinstance(remote_versions, Err):
            return remote_versions
        if parse_version(version) in remote_versions.value:
            self._console.print(f"git push {self.remote} :refs/tags/{tag}", Style.DIM)
            deleted = self._repo.delete_remote_tag(self.remote, tag)
            if isinstance(deleted, Err):
                return Err(network_failure(deleted.error))
            self._console.success(f"remote tag {tag} deleted")

        local_tags = self._repo.tags()
        if isinstance(local_tags, Err):
            return Err(git_failure(local_tags.error))
        if tag in local_tags.value:
            self._console.print(f"git tag -d {tag}", Style.DIM)
            removed = self._repo.delete_tag(tag)
            if isinstance(removed, Err):
                return Err(git_failure(removed.error))

        self._console.print(f"git tag {tag}", Style.DIM)
        created = self._repo.create_tag(tag)
        if isinstance(created, Err):
            return Err(git_failure(created.error))

        self._console.print(f"git push {self.remote} --tags", Style.DIM)
        pushed = self._repo.push_tags(self.remote)
        if isinstance(pushed, Err):
            return Err(network_failure(pushed.error))
        self._console.success(f"tag {tag} pushed")
        return Ok(None)

    def merge_to_release(self, dev_branch: str) -> Result[None, ReleaseFailure]:
        """Merge `dev_branch` into the release branch and push it."""
        switched = self._sync.switch_to(self._release_branch)
        if isinstance(switched, Err):
            return switched

        gate = self._sync.ensure_no_conflicts()
        if isinstance(gate, Err):
            return gate

        self._console.print(f"git merge {dev_branch}", Style.DIM)
        merged = self._repo.merge(dev_branch)
        if isinstance(merged, Err):
            return self._sync.conflicts_or(git_failure(merged.error))
        self._console.success(f"merged {dev_branch} -> {self._release_branch}")

        return self._sync.push(self._release_branch)

    def cleanup_dev_branch(self, dev_branch: str) -> Result[None, ReleaseFailure]:
        """Delete the development branch locally, then on the remote."""
        self._console.print(f"git branch -d {dev_branch}", Style.DIM)
        deleted = self._repo.delete_branch(dev_branch)
        if isinstance(deleted, Err):
            return Err(git_failure(deleted.error))
        self._console.success(f"local branch {dev_branch} deleted")

        self._console.print(f"git push {self.remote} --delete {dev_branch}", Style.DIM)
        remote_deleted = self._repo.delete_remote_branch(self.remote, dev_branch)
        if isinstance(remote_deleted, Err):
            return Err(network_failure(remote_deleted.error))
        self._console.success(f"remote branch {dev_branch} deleted")
        return Ok(None)

    def promote(self, version: str, dev_branch: str) -> Result[None, ReleaseFailure]:
        for step in (
            lambda: self.retag_release(version),
            lambda: self.merge_to_release(dev_branch),
            lambda: self.cleanup_dev_branch(dev_branch),
        ):
            result = step()
            if isinstance(result, Err):
                return result
        return Ok(None)

"""Development branch and version negotiation.

The newest valid remote `release/<semver>` tag decides the branch:

- no release yet, or the local version is newer: `dev/<local>`
- otherwise the operator picks a bump kind, applied to the *release*
  version, and the manifest is rewritten to match before any commit.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sesame.core.result import Err, Ok, Result
from sesame.output.console import ConsoleProtocol
from sesame.release.errors import ManifestError, ReleaseFailure
from sesame.release.manifest import write_version
from sesame.release.model import BumpKind, RefKind, ReleaseContext, dev_branch
from sesame.release.prompts import Choice, Prompter
from sesame.release.semver import SemVer, parse_version
from sesame.release.sync import SyncEngine

BumpChooser = Callable[[SemVer], BumpKind]

BUMP_KINDS: tuple[BumpKind, ...] = ("patch", "minor", "major")


@dataclass(frozen=True, slots=True)
class Negotiation:
    branch: str
    version: str
    release_version: str | None
    bumped: bool


def negotiate(
    local_version: str,
    release_versions: Sequence[SemVer],
    choose_bump: BumpChooser,
) -> Result[Negotiation, ManifestError]:
    """Compute `(branch, version)` from the local version and remote releases.

    Args:
        local_version: Version declared in package.json.
        release_versions: Remote release versions, newest first.
        choose_bump: Called only when the local version is not newer than
            the latest release; receives that release version.
    """
    local = parse_version(local_version)
    if local is None:
        return Err(
            ManifestError(
                f"invalid version in package.json: {local_version}",
                hint="expected MAJOR.MINOR.PATCH[-PRERELEASE]",
            )
        )

    latest = max(release_versions) if release_versions else None
    if latest is None or local > latest:
        return Ok(
            Negotiation(
                branch=dev_branch(str(local)),
                version=str(local),
                release_version=str(latest) if latest else None,
                bumped=False,
            )
        )

    bumped = latest.bump(choose_bump(latest))
    return Ok(
        Negotiation(
            branch=dev_branch(str(bumped)),
            version=str(bumped),
            release_version=str(latest),
            bumped=True,
        )
    )


def prompt_bump_kind(prompter: Prompter) -> BumpChooser:
    """Build a chooser that asks the operator, showing each resulting version."""

    def choose(release: SemVer) -> BumpKind:
        choices = [
            Choice(value=kind, label=f"{kind} ({release} -> {release.bump(kind)})")
            for kind in BUMP_KINDS
        ]
        return prompter.select("Remote release is not older than local; pick a bump", choices)

    return choose


class VersionNegotiator:
    def __init__(
        self,
        *,
        context: ReleaseContext,
        sync: SyncEngine,
        console: ConsoleProtocol,
        choose_bump: BumpChooser,
    ) -> None:
        self._ctx = context
        self._sync = sync
        self._console = console
        self._choose_bump = choose_bump

    def run(self) -> Result[Negotiation, ReleaseFailure]:
        """Negotiate, fix the context version, and sync package.json."""
        self._console.info("listing remote release tags")
        versions = self._sync.list_remote_versions(RefKind.TAG)
        if isinstance(versions, Err):
            return versions
        self._console.verbose(
            f"release versions: {', '.join(str(v) for v in versions.value) or '(none)'}"
        )

        negotiated = negotiate(self._ctx.current_version, versions.value, self._choose_bump)
        if isinstance(negotiated, Err):
            return negotiated
        result = negotiated.value

        if result.release_version is None:
            self._console.info("no remote release yet")
        elif result.bumped:
            self._console.info(f"latest release {result.release_version} >= local; bumped")
        else:
            self._console.info(f"local version is newer than release {result.release_version}")

        self._ctx.apply_version(result.version, result.branch)

        written = write_version(self._ctx.working_dir, result.version)
        if isinstance(written, Err):
            return written
        if written.value:
            self._console.success(f"package.json version -> {result.version}")

        self._console.success(f"development branch: {result.branch}")
        return Ok(result)

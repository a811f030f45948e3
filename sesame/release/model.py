from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from sesame.release.semver import SemVer


BumpKind = Literal["major", "minor", "patch"]

RELEASE_PREFIX = "release"
DEVELOP_PREFIX = "dev"


class RefKind(Enum):
    TAG = "tag"  # refs/tags/release/<semver>
    BRANCH = "branch"  # refs/heads/dev/<semver>


@dataclass(frozen=True, slots=True)
class RemoteRef:
    kind: RefKind
    version: SemVer

    @property
    def name(self) -> str:
        prefix = RELEASE_PREFIX if self.kind is RefKind.TAG else DEVELOP_PREFIX
        return f"{prefix}/{self.version}"


class BuildOutcome(StrEnum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    DISCONNECTED = "disconnected"

    @property
    def is_terminal(self) -> bool:
        return self is not BuildOutcome.PENDING


class ReleasePhase(StrEnum):
    PREPARING = "preparing"
    COMMITTING = "committing"
    PUBLISHING = "publishing"
    PROMOTING = "promoting"
    DONE = "done"
    FAILED = "failed"


def dev_branch(version: str) -> str:
    return f"{DEVELOP_PREFIX}/{version}"


def release_tag(version: str) -> str:
    return f"{RELEASE_PREFIX}/{version}"


@dataclass(slots=True)
class ReleaseContext:
    """State shared by every release component for one run.

    Only `current_version` and `branch_name` change after creation, and only
    once, through `apply_version`, before anything is committed.
    """

    project_name: str
    current_version: str
    working_dir: Path
    remote_name: str = "origin"
    branch_name: str | None = None
    _version_fixed: bool = field(default=False, repr=False)

    def apply_version(self, version: str, branch: str) -> None:
        if self._version_fixed:
            raise RuntimeError("release version already negotiated for this run")
        self.current_version = version
        self.branch_name = branch
        self._version_fixed = True

    @property
    def version_fixed(self) -> bool:
        return self._version_fixed


@dataclass(frozen=True, slots=True)
class PublishOptions:
    """Operator choices for `sesame publish`."""

    build_cmd: str = ""
    prod: bool = False
    refresh_server: bool = False
    refresh_token: bool = False
    refresh_owner: bool = False
    refresh_publish_type: bool = False
    ssh_user: str | None = None
    ssh_ip: str | None = None
    ssh_path: str | None = None

    @property
    def template_destination(self) -> str | None:
        """scp destination for the built template; None unless all three are set."""
        if self.ssh_user and self.ssh_ip and self.ssh_path:
            return f"{self.ssh_user}@{self.ssh_ip}:{self.ssh_path}"
        return None

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sesame.core.result import Err, Ok
from sesame.git.repository import Repository
from sesame.output.console import MockConsole
from sesame.release.model import BumpKind, ReleaseContext
from sesame.release.prompts import ScriptedPrompter
from sesame.release.semver import SemVer
from sesame.release.sync import SyncEngine
from sesame.release.version import (
    BumpChooser,
    Negotiation,
    VersionNegotiator,
    negotiate,
    prompt_bump_kind,
)

from ._fakes import FakeGit, git_error, ls_remote, write_manifest


def _never(_: SemVer) -> BumpKind:
    raise AssertionError("bump chooser must not be called")


class TestNegotiate:
    def test_no_release_uses_local_version(self) -> None:
        result = negotiate("1.0.0", [], _never)
        assert result == Ok(
            Negotiation(branch="dev/1.0.0", version="1.0.0", release_version=None, bumped=False)
        )

    def test_local_newer_than_release(self) -> None:
        result = negotiate("2.0.0", [SemVer(1, 9, 0)], _never)
        assert isinstance(result, Ok)
        assert result.value.branch == "dev/2.0.0"
        assert result.value.bumped is False

    def test_prerelease_local_version_is_kept(self) -> None:
        result = negotiate("1.0.0-beta.1", [], _never)
        assert result == Ok(
            Negotiation(
                branch="dev/1.0.0-beta.1",
                version="1.0.0-beta.1",
                release_version=None,
                bumped=False,
            )
        )

    def test_prerelease_of_next_major_is_newer_than_release(self) -> None:
        result = negotiate("2.0.0-beta.1", [SemVer(1, 9, 0)], _never)
        assert isinstance(result, Ok)
        assert result.value.version == "2.0.0-beta.1"
        assert result.value.bumped is False

    def test_prerelease_of_released_version_requires_bump(self) -> None:
        result = negotiate("1.2.0-rc.1", [SemVer(1, 2, 0)], lambda _: "patch")
        assert isinstance(result, Ok)
        assert result.value.version == "1.2.1"
        assert result.value.bumped is True

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [("patch", "1.2.1"), ("minor", "1.3.0"), ("major", "2.0.0")],
    )
    def test_bump_is_relative_to_release(self, kind: BumpKind, expected: str) -> None:
        seen: list[SemVer] = []

        def choose(release: SemVer) -> BumpKind:
            seen.append(release)
            return kind

        result = negotiate("1.0.0", [SemVer(1, 2, 0), SemVer(1, 1, 0)], choose)

        assert isinstance(result, Ok)
        assert result.value.version == expected
        assert result.value.branch == f"dev/{expected}"
        assert result.value.release_version == "1.2.0"
        assert seen == [SemVer(1, 2, 0)]

    def test_equal_versions_require_bump(self) -> None:
        result = negotiate("1.2.0", [SemVer(1, 2, 0)], lambda _: "patch")
        assert isinstance(result, Ok)
        assert result.value.version == "1.2.1"

    def test_invalid_local_version(self) -> None:
        result = negotiate("latest", [], _never)
        assert isinstance(result, Err)
        assert "latest" in result.error.message


def test_prompt_bump_kind_shows_resulting_versions() -> None:
    prompter = ScriptedPrompter(answers=["minor"])
    choose = prompt_bump_kind(prompter)

    assert choose(SemVer(1, 2, 0)) == "minor"
    assert len(prompter.asked) == 1


class TestVersionNegotiator:
    def _negotiator(
        self, tmp_path: Path, choose: BumpChooser = _never
    ) -> tuple[VersionNegotiator, ReleaseContext]:
        ctx = ReleaseContext(project_name="demo-app", current_version="1.0.0", working_dir=tmp_path)
        console = MockConsole()
        sync = SyncEngine(
            repo=Repository(tmp_path), context=ctx, console=console, prompter=ScriptedPrompter()
        )
        negotiator = VersionNegotiator(
            context=ctx,
            sync=sync,
            console=console,
            choose_bump=choose,
        )
        return negotiator, ctx

    def test_first_release(self, tmp_path: Path, git: FakeGit) -> None:
        write_manifest(tmp_path, version="1.0.0")
        negotiator, ctx = self._negotiator(tmp_path)

        result = negotiator.run()

        assert isinstance(result, Ok)
        assert ctx.branch_name == "dev/1.0.0"
        assert ctx.current_version == "1.0.0"
        assert ctx.version_fixed is True

    def test_bump_rewrites_manifest(self, tmp_path: Path, git: FakeGit) -> None:
        path = write_manifest(tmp_path, version="1.0.0")
        git.on("ls-remote", ls_remote("refs/tags/release/1.2.0", "refs/tags/release/bogus"))
        negotiator, ctx = self._negotiator(tmp_path, lambda _: "minor")

        result = negotiator.run()

        assert isinstance(result, Ok)
        assert ctx.branch_name == "dev/1.3.0"
        assert ctx.current_version == "1.3.0"
        assert json.loads(path.read_text(encoding="utf-8"))["version"] == "1.3.0"

    def test_listing_failure(self, tmp_path: Path, git: FakeGit) -> None:
        write_manifest(tmp_path)
        git.on("ls-remote", git_error("unreachable"))
        negotiator, ctx = self._negotiator(tmp_path)

        result = negotiator.run()

        assert isinstance(result, Err)
        assert ctx.version_fixed is False


def test_context_version_is_fixed_once(tmp_path: Path) -> None:
    ctx = ReleaseContext(project_name="demo-app", current_version="1.0.0", working_dir=tmp_path)
    ctx.apply_version("1.0.1", "dev/1.0.1")

    with pytest.raises(RuntimeError):
        ctx.apply_version("1.0.2", "dev/1.0.2")
    assert ctx.current_version == "1.0.1"

"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path

import pytest

import sesame.git.repository as repository_mod
from sesame.core.result import Err, Ok, Result
from sesame.git.repository import RepoStatus, Repository, StatusEntry
from sesame.platform.process import ProcessError


class _FakeGit:
    def __init__(self, outputs: dict[str, Result[str, ProcessError]] | None = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        args = cmd[3:]
        self.calls.append(args)
        self.timeouts.append(timeout)
        return self.outputs.get(args[0], Ok(""))


@pytest.fixture
def fake_git(monkeypatch: pytest.MonkeyPatch) -> _FakeGit:
    fake = _FakeGit()
    monkeypatch.setattr(repository_mod, "run_process", fake)
    return fake


class TestStatusEntry:
    def test_untracked(self) -> None:
        entry = StatusEntry(xy="??", path="new.txt")
        assert entry.is_untracked is True
        assert entry.is_staged is False

    @pytest.mark.parametrize("xy", ["UU", "AA", "DD", "AU", "UA", "DU", "UD"])
    def test_conflict_codes(self, xy: str) -> None:
        assert StatusEntry(xy=xy, path="f").is_conflicted is True

    def test_modified_is_not_conflicted(self) -> None:
        assert StatusEntry(xy="M ", path="f").is_conflicted is False

    def test_pretty_xy(self) -> None:
        assert StatusEntry(xy=" M", path="f").pretty_xy() == ".M"


class TestRepoStatus:
    def test_clean(self) -> None:
        status = RepoStatus(branch="master")
        assert status.has_changes is False
        assert status.has_conflicts is False

    def test_sets(self) -> None:
        status = RepoStatus(
            branch="dev/1.0.0",
            entries=(
                StatusEntry(xy="??", path="a.txt"),
                StatusEntry(xy="A ", path="b.txt"),
                StatusEntry(xy=" D", path="c.txt"),
                StatusEntry(xy="M ", path="d.txt"),
                StatusEntry(xy="R ", path="e.txt", orig_path="old.txt"),
                StatusEntry(xy="UU", path="f.txt"),
            ),
        )
        assert status.not_added == {"a.txt"}
        assert status.created == {"b.txt"}
        assert status.deleted == {"c.txt"}
        assert status.modified == {"d.txt"}
        assert status.renamed == {"e.txt"}
        assert status.conflicted == {"f.txt"}
        assert status.staged == {"b.txt", "d.txt", "e.txt"}
        assert status.paths_to_stage() == ["a.txt", "b.txt", "c.txt", "d.txt", "e.txt", "old.txt"]


class TestStatusParsing:
    def test_parses_branch_and_entries(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        fake_git.outputs["status"] = Ok(
            "## dev/1.2.0...origin/dev/1.2.0 [ahead 1]\0"
            " M src/index.js\0"
            "?? notes.md\0"
            "UU package.json\0"
            "R  new name.js\0old name.js\0"
        )

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        status = result.value
        assert status.branch == "dev/1.2.0"
        assert status.upstream == "origin/dev/1.2.0"
        assert status.modified == {"src/index.js"}
        assert status.not_added == {"notes.md"}
        assert status.conflicted == {"package.json"}
        assert status.renamed == {"new name.js"}
        assert status.paths_to_stage() == ["new name.js", "notes.md", "old name.js", "src/index.js"]
        assert fake_git.calls == [["status", "--porcelain=v1", "-b", "-z"]]

    def test_non_ascii_paths_are_kept_verbatim(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        fake_git.outputs["status"] = Ok("## master\0?? café.txt\0UU résumé.md\0")

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        assert result.value.not_added == {"café.txt"}
        assert result.value.conflicted == {"résumé.md"}
        assert result.value.paths_to_stage() == ["café.txt"]

    def test_path_containing_arrow_is_not_a_rename(
        self, tmp_path: Path, fake_git: _FakeGit
    ) -> None:
        fake_git.outputs["status"] = Ok("## master\0?? a -> b.txt\0")

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        assert result.value.not_added == {"a -> b.txt"}
        assert result.value.entries[0].orig_path is None

    def test_no_commits_yet(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        fake_git.outputs["status"] = Ok("## No commits yet on master\0?? a\0")

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        assert result.value.branch == "master"
        assert result.value.upstream is None

    def test_error_maps_to_git_error(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        fake_git.outputs["status"] = Err(
            ProcessError(
                command=("git", "status"),
                returncode=128,
                stdout="",
                stderr="fatal: not a git repository\n",
            )
        )

        result = Repository(tmp_path).status()

        assert isinstance(result, Err)
        assert result.error.message == "fatal: not a git repository"
        assert result.error.returncode == 128


class TestCommands:
    def test_pull_allows_unrelated_histories(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        Repository(tmp_path).pull("origin", "master", allow_unrelated_histories=True)
        assert fake_git.calls == [
            ["pull", "--no-rebase", "--no-edit", "--allow-unrelated-histories", "origin", "master"]
        ]

    def test_network_commands_get_longer_timeout(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        repo = Repository(tmp_path)
        repo.push("origin", "dev/1.0.0")
        repo.create_tag("release/1.0.0")
        assert fake_git.timeouts[0] is not None and fake_git.timeouts[1] is not None
        assert fake_git.timeouts[0] > fake_git.timeouts[1]

    def test_delete_remote_tag(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        Repository(tmp_path).delete_remote_tag("origin", "release/1.0.0")
        assert fake_git.calls == [["push", "origin", ":refs/tags/release/1.0.0"]]

    def test_add_without_paths_is_noop(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        assert Repository(tmp_path).add([]) == Ok("")
        assert fake_git.calls == []

    def test_current_branch_detached(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        fake_git.outputs["rev-parse"] = Ok("HEAD\n")
        assert Repository(tmp_path).current_branch() is None

    def test_local_branches(self, tmp_path: Path, fake_git: _FakeGit) -> None:
        fake_git.outputs["branch"] = Ok("master\ndev/1.0.0\n")
        assert Repository(tmp_path).local_branches() == Ok(["master", "dev/1.0.0"])

from __future__ import annotations

import pytest

import sesame.git.repository as repository_mod

from ._fakes import CLEAN, FakeGit


@pytest.fixture
def git(monkeypatch: pytest.MonkeyPatch) -> FakeGit:
    fake = FakeGit()
    fake.on("status", CLEAN)
    monkeypatch.setattr(repository_mod, "run_process", fake)
    return fake

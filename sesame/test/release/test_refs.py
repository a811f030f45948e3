from __future__ import annotations

from sesame.release.model import RefKind, RemoteRef
from sesame.release.refs import parse_remote_refs, remote_has_head
from sesame.release.semver import SemVer

from ._fakes import ls_remote


def test_tags_sorted_newest_first() -> None:
    listing = ls_remote(
        "refs/tags/release/1.2.0",
        "refs/tags/release/1.10.0",
        "refs/tags/release/0.9.1",
        "refs/heads/dev/2.0.0",
    )

    refs = parse_remote_refs(listing, RefKind.TAG)

    assert [r.name for r in refs] == ["release/1.10.0", "release/1.2.0", "release/0.9.1"]


def test_malformed_and_duplicate_refs_are_dropped() -> None:
    listing = ls_remote(
        "refs/tags/release/1.2.0",
        "refs/tags/release/1.2.0",
        "refs/tags/release/v1.3.0",
        "refs/tags/release/1.4",
        "refs/tags/other/9.9.9",
        "garbage line",
    )

    refs = parse_remote_refs(listing, RefKind.TAG)

    assert refs == [RemoteRef(kind=RefKind.TAG, version=SemVer(1, 2, 0))]


def test_prerelease_tags_sort_below_their_release() -> None:
    listing = ls_remote(
        "refs/tags/release/2.0.0-rc.1",
        "refs/tags/release/2.0.0",
        "refs/tags/release/2.0.0-beta",
        "refs/tags/release/1.9.0",
    )

    refs = parse_remote_refs(listing, RefKind.TAG)

    assert [r.name for r in refs] == [
        "release/2.0.0",
        "release/2.0.0-rc.1",
        "release/2.0.0-beta",
        "release/1.9.0",
    ]


def test_branches() -> None:
    listing = ls_remote("refs/heads/master", "refs/heads/dev/1.0.0", "refs/heads/dev/1.1.0")

    refs = parse_remote_refs(listing, RefKind.BRANCH)

    assert [r.name for r in refs] == ["dev/1.1.0", "dev/1.0.0"]


def test_empty_listing() -> None:
    assert parse_remote_refs("", RefKind.TAG) == []


def test_remote_has_head() -> None:
    listing = ls_remote("refs/heads/master", "refs/heads/dev/1.0.0")
    assert remote_has_head(listing, "dev/1.0.0") is True
    assert remote_has_head(listing, "dev/1.0") is False
    assert remote_has_head("", "master") is False

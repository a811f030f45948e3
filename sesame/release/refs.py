"""Parsing of `git ls-remote --refs` listings."""

from __future__ import annotations

import re

from sesame.release.model import DEVELOP_PREFIX, RELEASE_PREFIX, RefKind, RemoteRef
from sesame.release.semver import parse_version

_REF_PATTERNS: dict[RefKind, re.Pattern[str]] = {
    RefKind.TAG: re.compile(rf"\srefs/tags/{RELEASE_PREFIX}/(\S+)$"),
    RefKind.BRANCH: re.compile(rf"\srefs/heads/{DEVELOP_PREFIX}/(\S+)$"),
}


def parse_remote_refs(listing: str, kind: RefKind) -> list[RemoteRef]:
    """Extract release tags or dev branches, newest first.

    Lines that do not match, or whose version is not a valid semantic
    version, are skipped. Equal versions appear once.
    """
    pattern = _REF_PATTERNS[kind]
    seen: set[RemoteRef] = set()
    for line in listing.splitlines():
        m = pattern.search(line.rstrip())
        if m is None:
            continue
        version = parse_version(m.group(1))
        if version is None:
            continue
        seen.add(RemoteRef(kind=kind, version=version))
    return sorted(seen, key=lambda ref: ref.version, reverse=True)


def remote_has_head(listing: str, branch: str) -> bool:
    """True if `refs/heads/<branch>` appears in the listing."""
    target = f"refs/heads/{branch}"
    return any(line.split()[-1] == target for line in listing.splitlines() if line.split())

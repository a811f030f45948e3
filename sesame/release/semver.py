from __future__ import annotations

import functools
import re
from dataclasses import dataclass

from sesame.release.model import BumpKind

_IDENT = r"(?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*)"
_VERSION_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

_PreKey = tuple[tuple[int, int, str], ...]


def _prerelease_key(prerelease: tuple[str, ...]) -> tuple[int, _PreKey]:
    # A release sorts above every pre-release of the same core version.
    if not prerelease:
        return (1, ())
    return (
        0,
        tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in prerelease),
    )


@functools.total_ordering
@dataclass(frozen=True, slots=True)
class SemVer:
    """Semantic version ordered by SemVer 2.0 precedence.

    Build metadata is accepted by `parse_version` and discarded.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()

    def _key(self) -> tuple[int, int, int, tuple[int, _PreKey]]:
        return (self.major, self.minor, self.patch, _prerelease_key(self.prerelease))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{core}-{'.'.join(self.prerelease)}"
        return core

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def bump(self, kind: BumpKind) -> "SemVer":
        """Next version of `kind`, following npm semver's `inc`.

        A pre-release of the version the bump would produce is finalized
        instead of skipped: `2.0.0-rc.1` bumps to `2.0.0` for any kind that
        lands there.
        """
        pre = self.is_prerelease
        match kind:
            case "major":
                if pre and self.minor == 0 and self.patch == 0:
                    return SemVer(self.major, 0, 0)
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                if pre and self.patch == 0:
                    return SemVer(self.major, self.minor, 0)
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                if pre:
                    return SemVer(self.major, self.minor, self.patch)
                return SemVer(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")


def parse_version(text: str) -> SemVer | None:
    """Parse `MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]`; None if invalid."""
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    prerelease = tuple(m.group(4).split(".")) if m.group(4) else ()
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), prerelease)

"""Credential and preference cache.

Values live one-per-file under `<home>/.git/`, matching the layout earlier
releases of the tool wrote, so an existing cache is picked up unchanged:

  <home>/.git/.git_server    github | gitee
  <home>/.git/.git_token     personal access token
  <home>/.git/.git_own       user | org
  <home>/.git/.git_login     repository owner login
  <home>/.git/.git_publish   publish target (oss)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from sesame.core.result import Err, Ok, Result
from sesame.platform.files import atomic_write_text, read_text_or_none

__all__ = ["CacheError", "CacheKey", "CacheStore", "CACHE_FILES"]

CacheKey = Literal["git_server", "token", "owner", "login", "publish_target"]

CACHE_DIR_NAME = ".git"

CACHE_FILES: dict[CacheKey, str] = {
    "git_server": ".git_server",
    "token": ".git_token",
    "owner": ".git_own",
    "login": ".git_login",
    "publish_target": ".git_publish",
}


@dataclass(frozen=True, slots=True)
class CacheError:
    message: str
    path: Path | None = None


class CacheStore:
    """Read/write access to cached credentials."""

    def __init__(self, home_dir: Path) -> None:
        self._root = home_dir / CACHE_DIR_NAME

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: CacheKey) -> Path:
        return self._root / CACHE_FILES[key]

    def read(self, key: CacheKey) -> str | None:
        """Return the cached value, or None if absent or blank."""
        text = read_text_or_none(self.path_for(key))
        if text is None:
            return None
        return text.strip() or None

    def write(self, key: CacheKey, value: str) -> Result[Path, CacheError]:
        path = self.path_for(key)
        try:
            atomic_write_text(path, value)
        except OSError as e:
            return Err(CacheError(f"Could not write {path}: {e}", path=path))
        return Ok(path)

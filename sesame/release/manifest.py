"""package.json access.

The manifest is the single source of the project name, version and build
scripts. `write_version` keeps the persisted version in step with the
negotiated development branch.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from sesame.core.result import Err, Ok, Result
from sesame.core.structured import StrDict, as_str_dict, get_str, get_table
from sesame.platform.files import atomic_write_text
from sesame.release.errors import ManifestError

MANIFEST_FILE = "package.json"
DEFAULT_BUILD_CMD = "npm run build"
_ALLOWED_RUNNERS = frozenset({"npm", "cnpm"})


@dataclass(frozen=True, slots=True)
class ProjectManifest:
    path: Path
    name: str
    version: str
    scripts: tuple[str, ...]


def manifest_path(working_dir: Path) -> Path:
    return working_dir / MANIFEST_FILE


def _read_json(path: Path) -> Result[StrDict, ManifestError]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(ManifestError(f"{MANIFEST_FILE} not found", path=path))
    except OSError as e:
        return Err(ManifestError(f"failed to read {MANIFEST_FILE}: {e}", path=path))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ManifestError(f"invalid JSON in {MANIFEST_FILE}: {e}", path=path))

    data = as_str_dict(obj)
    if data is None:
        return Err(ManifestError(f"invalid JSON root in {MANIFEST_FILE}", path=path))
    return Ok(data)


def load_manifest(working_dir: Path) -> Result[ProjectManifest, ManifestError]:
    """Read package.json and require name, version and a build script."""
    path = manifest_path(working_dir)
    data = _read_json(path)
    if isinstance(data, Err):
        return data

    name = get_str(data.value, "name")
    version = get_str(data.value, "version")
    scripts = get_table(data.value, "scripts") or {}
    if not name or not version or "build" not in scripts:
        return Err(
            ManifestError(
                f"{MANIFEST_FILE} is incomplete",
                path=path,
                hint="name, version and scripts.build are required",
            )
        )

    return Ok(
        ProjectManifest(path=path, name=name, version=version, scripts=tuple(sorted(scripts)))
    )


def validate_build_cmd(manifest: ProjectManifest, build_cmd: str) -> Result[str, ManifestError]:
    """Check a build command; empty means `npm run build`.

    The command must be run by npm or cnpm and its last word must name a
    script declared in package.json.
    """
    cmd = build_cmd.strip() or DEFAULT_BUILD_CMD
    words = cmd.split()
    if words[0] not in _ALLOWED_RUNNERS:
        return Err(
            ManifestError(
                f"invalid build command: {cmd}",
                path=manifest.path,
                hint="the build command must start with npm or cnpm",
            )
        )
    if words[-1] not in manifest.scripts:
        return Err(
            ManifestError(
                f"build script not found: {words[-1]}",
                path=manifest.path,
                hint=f"declared scripts: {', '.join(manifest.scripts) or '(none)'}",
            )
        )
    return Ok(cmd)


def write_version(working_dir: Path, version: str) -> Result[bool, ManifestError]:
    """Rewrite the manifest version if it differs.

    Returns:
        Ok(True) when the file changed, Ok(False) when already in sync.
    """
    path = manifest_path(working_dir)
    data = _read_json(path)
    if isinstance(data, Err):
        return data

    if data.value.get("version") == version:
        return Ok(False)

    data.value["version"] = version
    try:
        atomic_write_text(path, json.dumps(data.value, indent=2, ensure_ascii=False) + "\n")
    except OSError as e:
        return Err(ManifestError(f"failed to write {MANIFEST_FILE}: {e}", path=path))
    return Ok(True)

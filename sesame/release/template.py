"""Template upload after a successful build.

The build service stores the built `index.html` in object storage. When all
three `--ssh-*` options are given, the file is downloaded into
`<home>/cos/<name>@<version>/`, copied to the template host with scp, and
the directory is emptied again.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from sesame.core.result import Err, Ok, Result
from sesame.core.structured import as_str_dict
from sesame.hosting.http import HttpClient
from sesame.output.console import ConsoleProtocol
from sesame.platform.process import run as run_process
from sesame.release.errors import NetworkError
from sesame.release.timeouts import TEMPLATE_UPLOAD_TIMEOUT_SECONDS

__all__ = ["TEMPLATE_FILE", "TemplateUploader", "template_dir"]

TEMPLATE_FILE = "index.html"
TEMPLATE_CACHE_DIR = "cos"


def template_dir(home_dir: Path, project_name: str, version: str) -> Path:
    return home_dir / TEMPLATE_CACHE_DIR / f"{project_name}@{version}"


def _empty_dir(directory: Path) -> None:
    if not directory.is_dir():
        return
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


@dataclass(frozen=True, slots=True)
class TemplateUploader:
    http: HttpClient
    console: ConsoleProtocol
    home_dir: Path
    timeout: float = TEMPLATE_UPLOAD_TIMEOUT_SECONDS

    def upload(
        self, *, project_name: str, version: str, prod: bool, destination: str
    ) -> Result[bool, NetworkError]:
        """Copy the built template to `destination` (`user@host:path`).

        Returns Ok(False) when the build service has no template for the
        project; nothing is downloaded in that case.
        """
        query: dict[str, str | int] = {
            "type": "prod" if prod else "dev",
            "project": project_name,
            "file": TEMPLATE_FILE,
        }
        response = self.http.get("cos/get", query)
        if isinstance(response, Err):
            return Err(NetworkError(operation="GET cos/get", message=response.error.message))

        body = as_str_dict(response.value.data) or {}
        url = body.get("data")
        if body.get("code") != 0 or not isinstance(url, str) or not url:
            self.console.warning(f"no {TEMPLATE_FILE} stored for {project_name}; upload skipped")
            return Ok(False)

        directory = template_dir(self.home_dir, project_name, version)
        self._clear(directory)
        downloaded = self.http.download(url, directory / TEMPLATE_FILE)
        if isinstance(downloaded, Err):
            return Err(NetworkError(operation=f"GET {url}", message=downloaded.error.message))
        self.console.success(f"template downloaded to {directory}")

        self.console.info(f"uploading {TEMPLATE_FILE} to {destination}")
        # BatchMode: fail instead of asking for a password nobody will type.
        copied = run_process(
            ["scp", "-o", "BatchMode=yes", str(downloaded.value), destination],
            cwd=directory,
            timeout=self.timeout,
        )
        self._clear(directory)
        if isinstance(copied, Err):
            return Err(
                NetworkError(
                    operation=f"scp {TEMPLATE_FILE} {destination}",
                    message=copied.error.detail,
                    hint="Check that the template host accepts your ssh key.",
                )
            )

        self.console.success(f"template uploaded to {destination}")
        return Ok(True)

    def _clear(self, directory: Path) -> None:
        try:
            _empty_dir(directory)
        except OSError as e:
            self.console.warning(f"could not empty {directory}: {e}")

"""Hosted repository providers.

GitHub and Gitee are modelled as tagged variants: each class carries a
literal `kind` and implements every operation of `RepositoryBackend`
itself. There is no shared base class.

Responses are normalized: a success status yields the decoded payload,
anything else yields None. Callers turn None into an AuthError where it
matters.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal, Protocol

from sesame.core.result import Err, Result
from sesame.core.structured import StrDict, as_obj_list, as_str_dict
from sesame.hosting.http import ApiClient, ApiResponse, HttpClient, HttpError

__all__ = [
    "BackendKind",
    "GiteeBackend",
    "GitHubBackend",
    "HostingBackend",
    "RepositoryBackend",
    "create_backend",
    "normalize_response",
]

BackendKind = Literal["github", "gitee"]

GITHUB_API_URL = "https://api.github.com"
GITEE_API_URL = "https://gitee.com/api/v5"

_ORG_PAGE = {"page": 1, "per_page": 100}


class RepositoryBackend(Protocol):
    """Capability set shared by every hosting provider."""

    @property
    def kind(self) -> BackendKind: ...

    @property
    def token_help_url(self) -> str: ...

    @property
    def ssh_key_help_url(self) -> str: ...

    def set_token(self, token: str) -> None: ...

    def get_user(self) -> StrDict | None: ...

    def get_organizations(self) -> list[StrDict] | None: ...

    def get_repo(self, owner: str, name: str) -> StrDict | None: ...

    def create_repo(self, name: str) -> StrDict | None: ...

    def create_org_repo(self, name: str, owner: str) -> StrDict | None: ...

    def resolve_clone_url(self, owner: str, name: str) -> str: ...


def normalize_response(
    result: Result[ApiResponse, HttpError],
    *,
    success: Iterable[int] = (200, 201),
) -> object | None:
    """Return the payload of a successful response, else None."""
    if isinstance(result, Err):
        return None
    response = result.value
    if response.status not in set(success):
        return None
    return {} if response.data is None else response.data


def _as_dict(payload: object | None) -> StrDict | None:
    return as_str_dict(payload)


def _as_dict_list(payload: object | None) -> list[StrDict] | None:
    items = as_obj_list(payload)
    if items is None:
        return None
    out: list[StrDict] = []
    for item in items:
        d = as_str_dict(item)
        if d is not None:
            out.append(d)
    return out


class GitHubBackend:
    """GitHub REST v3. Auth: `Authorization: token <token>`."""

    kind: Literal["github"] = "github"
    token_help_url = "https://github.com/settings/tokens"
    ssh_key_help_url = (
        "https://docs.github.com/en/authentication/connecting-to-github-with-ssh/"
        "adding-a-new-ssh-key-to-your-github-account"
    )

    def __init__(self, *, http: HttpClient | None = None) -> None:
        self._http = http
        self._injected = http is not None

    def set_token(self, token: str) -> None:
        if not self._injected:
            self._http = ApiClient(GITHUB_API_URL, headers={"Authorization": f"token {token}"})

    def get_user(self) -> StrDict | None:
        if self._http is None:
            return None
        return _as_dict(normalize_response(self._http.get("/user")))

    def get_organizations(self) -> list[StrDict] | None:
        if self._http is None:
            return None
        return _as_dict_list(normalize_response(self._http.get("/user/orgs", _ORG_PAGE)))

    def get_repo(self, owner: str, name: str) -> StrDict | None:
        if self._http is None:
            return None
        return _as_dict(normalize_response(self._http.get(f"/repos/{owner}/{name}")))

    def create_repo(self, name: str) -> StrDict | None:
        if self._http is None:
            return None
        return _as_dict(normalize_response(self._http.post("/user/repos", {"name": name})))

    def create_org_repo(self, name: str, owner: str) -> StrDict | None:
        if self._http is None:
            return None
        return _as_dict(normalize_response(self._http.post(f"/orgs/{owner}/repos", {"name": name})))

    def resolve_clone_url(self, owner: str, name: str) -> str:
        return f"git@github.com:{owner}/{name}.git"


class GiteeBackend:
    """Gitee API v5. Auth: `access_token` query parameter.

    Gitee answers repository creation with 202 while the repo is being
    provisioned; that counts as success.
    """

    kind: Literal["gitee"] = "gitee"
    token_help_url = "https://gitee.com/profile/personal_access_tokens"
    ssh_key_help_url = "https://gitee.com/help/articles/4181"

    _SUCCESS = (200, 201, 202)

    def __init__(self, *, http: HttpClient | None = None) -> None:
        self._http = http
        self._injected = http is not None

    def set_token(self, token: str) -> None:
        if not self._injected:
            self._http = ApiClient(GITEE_API_URL, params={"access_token": token})

    def get_user(self) -> StrDict | None:
        if self._http is None:
            return None
        return _as_dict(normalize_response(self._http.get("/user"), success=self._SUCCESS))

    def get_organizations(self) -> list[StrDict] | None:
        if self._http is None:
            return None
        payload = normalize_response(self._http.get("/user/orgs", _ORG_PAGE), success=self._SUCCESS)
        return _as_dict_list(payload)

    def get_repo(self, owner: str, name: str) -> StrDict | None:
        if self._http is None:
            return None
        response = self._http.get(f"/repos/{owner}/{name}")
        payload = normalize_response(response, success=self._SUCCESS)
        return _as_dict(payload)

    def create_repo(self, name: str) -> StrDict | None:
        if self._http is None:
            return None
        payload = normalize_response(
            self._http.post("/user/repos", {"name": name}), success=self._SUCCESS
        )
        return _as_dict(payload)

    def create_org_repo(self, name: str, owner: str) -> StrDict | None:
        if self._http is None:
            return None
        payload = normalize_response(
            self._http.post(f"/orgs/{owner}/repos", {"name": name}), success=self._SUCCESS
        )
        return _as_dict(payload)

    def resolve_clone_url(self, owner: str, name: str) -> str:
        return f"git@gitee.com:{owner}/{name}.git"


HostingBackend = GitHubBackend | GiteeBackend


def create_backend(kind: str, *, http: HttpClient | None = None) -> HostingBackend | None:
    """Return the backend variant for `kind`, or None for unknown providers."""
    match kind:
        case "github":
            return GitHubBackend(http=http)
        case "gitee":
            return GiteeBackend(http=http)
        case _:
            return None

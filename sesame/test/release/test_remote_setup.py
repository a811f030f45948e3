from __future__ import annotations

from pathlib import Path

from sesame.core.cache import CacheStore
from sesame.core.result import Err, Ok
from sesame.git.repository import Repository
from sesame.hosting.backends import GitHubBackend, HostingBackend
from sesame.hosting.http import ApiResponse, MockHttpClient
from sesame.output.console import MockConsole
from sesame.release.errors import AuthError
from sesame.release.model import PublishOptions, ReleaseContext
from sesame.release.prompts import ScriptedPrompter
from sesame.release.remote_setup import DEFAULT_GITIGNORE, RemoteSetup
from sesame.release.sync import SyncEngine

from ._fakes import FakeGit, ls_remote


def _setup(
    tmp_path: Path,
    http: MockHttpClient,
    prompter: ScriptedPrompter,
    options: PublishOptions | None = None,
) -> tuple[RemoteSetup, CacheStore, Path]:
    project = tmp_path / "project"
    project.mkdir(exist_ok=True)
    cache = CacheStore(tmp_path / "home")
    ctx = ReleaseContext(project_name="demo-app", current_version="1.0.0", working_dir=project)
    console = MockConsole()
    repo = Repository(project)
    sync = SyncEngine(repo=repo, context=ctx, console=console, prompter=prompter)

    def factory(kind: str) -> HostingBackend | None:
        return GitHubBackend(http=http) if kind == "github" else None

    setup = RemoteSetup(
        context=ctx,
        repo=repo,
        sync=sync,
        cache=cache,
        console=console,
        prompter=prompter,
        options=options or PublishOptions(),
        backend_factory=factory,
    )
    return setup, cache, project


def _http(orgs: list[object] | None = None) -> MockHttpClient:
    http = MockHttpClient()
    http.set("GET", "/user", ApiResponse(200, {"login": "octocat"}))
    http.set("GET", "/user/orgs", ApiResponse(200, orgs or []))
    return http


def test_first_run_creates_everything(tmp_path: Path, git: FakeGit) -> None:
    http = _http()
    http.set("POST", "/user/repos", ApiResponse(201, {"name": "demo-app"}))
    git.on("rev-parse", "main\n")
    prompter = ScriptedPrompter(answers=["github", "", "tok", "user"])
    setup, cache, project = _setup(tmp_path, http, prompter)

    result = setup.run()

    assert isinstance(result, Ok)
    assert result.value.clone_url == "git@github.com:octocat/demo-app.git"
    assert cache.read("git_server") == "github"
    assert cache.read("token") == "tok"
    assert cache.read("owner") == "user"
    assert cache.read("login") == "octocat"
    assert (project / ".gitignore").read_text(encoding="utf-8") == DEFAULT_GITIGNORE
    assert git.mutations == [
        "init",
        "remote add origin git@github.com:octocat/demo-app.git",
        "checkout -b master",
        "push origin master",
    ]


def test_cached_settings_and_existing_repo(tmp_path: Path, git: FakeGit) -> None:
    http = _http()
    http.set("GET", "/repos/acme/demo-app", ApiResponse(200, {"name": "demo-app"}))
    prompter = ScriptedPrompter()
    setup, cache, project = _setup(tmp_path, http, prompter)
    cache.write("git_server", "github")
    cache.write("token", "t")
    cache.write("owner", "org")
    cache.write("login", "acme")
    (project / ".git").mkdir()

    result = setup.run()

    assert isinstance(result, Ok)
    assert result.value.login == "acme"
    assert prompter.asked == []
    assert git.mutations == []
    assert not any(c[0] == "POST" for c in http.calls)


def test_existing_remote_master_is_pulled(tmp_path: Path, git: FakeGit) -> None:
    http = _http()
    http.set("GET", "/repos/octocat/demo-app", ApiResponse(200, {"name": "demo-app"}))
    git.on("ls-remote", ls_remote("refs/heads/master"))
    git.on("remote", "origin\n")
    prompter = ScriptedPrompter(answers=["github", "tok", "user"])
    setup, _, _ = _setup(tmp_path, http, prompter)

    result = setup.run()

    assert isinstance(result, Ok)
    assert git.mutations == [
        "init",
        "pull --no-rebase --no-edit --allow-unrelated-histories origin master",
    ]


def test_organization_owner(tmp_path: Path, git: FakeGit) -> None:
    http = _http(orgs=[{"login": "acme"}, {"login": "umbrella"}])
    http.set("POST", "/orgs/umbrella/repos", ApiResponse(201, {"name": "demo-app"}))
    prompter = ScriptedPrompter(answers=["github", "tok", "org", "umbrella"])
    setup, cache, project = _setup(tmp_path, http, prompter)
    (project / ".git").mkdir()

    result = setup.run()

    assert isinstance(result, Ok)
    assert result.value.owner_kind == "org"
    assert cache.read("login") == "umbrella"


def test_invalid_token(tmp_path: Path, git: FakeGit) -> None:
    http = MockHttpClient()
    http.set("GET", "/user", ApiResponse(401, {"message": "Bad credentials"}))
    setup, _, _ = _setup(tmp_path, http, ScriptedPrompter(answers=["github", "bad"]))

    result = setup.run()

    assert isinstance(result, Err)
    assert isinstance(result.error, AuthError)
    assert "--refresh-token" in (result.error.hint or "")
    assert git.mutations == []


def test_repository_creation_failure(tmp_path: Path, git: FakeGit) -> None:
    http = _http()
    http.set("POST", "/user/repos", ApiResponse(422, {"message": "name already exists"}))
    setup, _, _ = _setup(tmp_path, http, ScriptedPrompter(answers=["github", "tok", "user"]))

    result = setup.run()

    assert isinstance(result, Err)
    assert isinstance(result.error, AuthError)
    assert "demo-app" in result.error.message


def test_refresh_token_prompts_again(tmp_path: Path, git: FakeGit) -> None:
    http = _http()
    http.set("GET", "/repos/octocat/demo-app", ApiResponse(200, {}))
    prompter = ScriptedPrompter(answers=["new"])
    setup, cache, project = _setup(
        tmp_path, http, prompter, PublishOptions(refresh_token=True)
    )
    cache.write("git_server", "github")
    cache.write("token", "old")
    cache.write("owner", "user")
    cache.write("login", "octocat")
    (project / ".git").mkdir()

    assert isinstance(setup.run(), Ok)
    assert cache.read("token") == "new"
    assert prompter.asked == ["Token"]

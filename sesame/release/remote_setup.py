"""Remote repository preparation.

Runs before the commit phase and is idempotent: cached answers are reused,
an existing remote repository is never re-created, an existing `.git`
directory is left alone.

1. resolve the hosting provider (cached, or asked)
2. resolve the token and authenticate
3. fetch user and organizations
4. resolve the owner (user or organization) and login
5. get or create the remote repository
6. write a default .gitignore if missing
7. initialise the local repository and make the first commit
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sesame.core.cache import CacheKey, CacheStore
from sesame.core.result import Err, Ok, Result
from sesame.core.structured import StrDict, get_str
from sesame.git.repository import Repository
from sesame.hosting.backends import HostingBackend, create_backend
from sesame.output.console import ConsoleProtocol, Style
from sesame.platform.files import atomic_write_text
from sesame.release.errors import AuthError, ReleaseFailure, git_failure
from sesame.release.model import PublishOptions, ReleaseContext
from sesame.release.prompts import Choice, Prompter
from sesame.release.sync import SyncEngine

__all__ = ["RemoteInfo", "RemoteSetup"]

BackendFactory = Callable[[str], HostingBackend | None]

OWNER_USER = "user"
OWNER_ORG = "org"

SERVER_CHOICES = (Choice(value="github", label="GitHub"), Choice(value="gitee", label="Gitee"))

DEFAULT_GITIGNORE = """\
.DS_Store
node_modules
/dist


# local env files
.env.local
.env.*.local

# Log files
npm-debug.log*
yarn-debug.log*
yarn-error.log*
pnpm-debug.log*

# Editor directories and files
.idea
.vscode
*.suo
*.ntvs*
*.njsproj
*.sln
*.sw?
"""


@dataclass(frozen=True, slots=True)
class RemoteInfo:
    backend: HostingBackend
    owner_kind: str
    login: str
    clone_url: str
    repo: StrDict


class RemoteSetup:
    def __init__(
        self,
        *,
        context: ReleaseContext,
        repo: Repository,
        sync: SyncEngine,
        cache: CacheStore,
        console: ConsoleProtocol,
        prompter: Prompter,
        options: PublishOptions,
        release_branch: str = "master",
        backend_factory: BackendFactory = create_backend,
    ) -> None:
        self._ctx = context
        self._repo = repo
        self._sync = sync
        self._cache = cache
        self._console = console
        self._prompter = prompter
        self._options = options
        self._release_branch = release_branch
        self._backend_factory = backend_factory

    def run(self) -> Result[RemoteInfo, ReleaseFailure]:
        backend = self._resolve_backend()
        if isinstance(backend, Err):
            return backend

        authed = self._authenticate(backend.value)
        if isinstance(authed, Err):
            return authed
        user, orgs = authed.value

        owner = self._resolve_owner(user, orgs)
        if isinstance(owner, Err):
            return owner
        owner_kind, login = owner.value

        repo = self._ensure_remote_repo(backend.value, owner_kind, login)
        if isinstance(repo, Err):
            return repo

        self._ensure_gitignore()

        clone_url = backend.value.resolve_clone_url(login, self._ctx.project_name)
        initialised = self._ensure_local_repo(clone_url)
        if isinstance(initialised, Err):
            return initialised

        return Ok(
            RemoteInfo(
                backend=backend.value,
                owner_kind=owner_kind,
                login=login,
                clone_url=clone_url,
                repo=repo.value,
            )
        )

    def _remember(self, key: CacheKey, value: str) -> None:
        written = self._cache.write(key, value)
        if isinstance(written, Err):
            self._console.warning(written.error.message)
        else:
            self._console.verbose(f"cached {key} -> {written.value}")

    def _resolve_backend(self) -> Result[HostingBackend, ReleaseFailure]:
        kind = self._cache.read("git_server")
        if kind is None or self._options.refresh_server:
            kind = self._prompter.select("Git hosting provider", SERVER_CHOICES)
            self._remember("git_server", kind)

        backend = self._backend_factory(kind)
        if backend is None:
            return Err(
                AuthError(
                    f"unknown git server: {kind}",
                    hint="Re-run with --refresh-server",
                )
            )
        self._console.success(f"git server: {backend.kind}")
        return Ok(backend)

    def _authenticate(
        self, backend: HostingBackend
    ) -> Result[tuple[StrDict, list[StrDict]], ReleaseFailure]:
        token = self._cache.read("token")
        if token is None or self._options.refresh_token:
            self._console.warning(
                f"{backend.kind} token missing; create one at {backend.token_help_url}"
            )
            token = ""
            while not token:
                token = self._prompter.text("Token", secret=True).strip()
            self._remember("token", token)
        backend.set_token(token)

        user = backend.get_user()
        if user is None:
            return Err(
                AuthError(
                    f"could not fetch the {backend.kind} user",
                    hint="The token may be invalid; re-run with --refresh-token",
                )
            )
        orgs = backend.get_organizations()
        if orgs is None:
            return Err(
                AuthError(
                    f"could not fetch {backend.kind} organizations",
                    hint="The token may lack the read:org scope",
                )
            )
        self._console.success(f"authenticated as {get_str(user, 'login') or '?'}")
        return Ok((user, orgs))

    def _resolve_owner(
        self, user: StrDict, orgs: list[StrDict]
    ) -> Result[tuple[str, str], ReleaseFailure]:
        owner_kind = self._cache.read("owner")
        login = self._cache.read("login")
        if owner_kind and login and not self._options.refresh_owner:
            self._console.success(f"owner: {login} ({owner_kind})")
            return Ok((owner_kind, login))

        choices = [Choice(value=OWNER_USER, label="Personal")]
        if orgs:
            choices.append(Choice(value=OWNER_ORG, label="Organization"))
        owner_kind = self._prompter.select("Repository owner", choices)

        if owner_kind == OWNER_USER:
            login = get_str(user, "login")
            if login is None:
                return Err(AuthError("user response has no login"))
        else:
            logins = [name for org in orgs if (name := get_str(org, "login"))]
            login = self._prompter.select(
                "Organization", [Choice(value=name, label=name) for name in logins]
            )

        self._remember("owner", owner_kind)
        self._remember("login", login)
        return Ok((owner_kind, login))

    def _ensure_remote_repo(
        self, backend: HostingBackend, owner_kind: str, login: str
    ) -> Result[StrDict, ReleaseFailure]:
        name = self._ctx.project_name
        existing = backend.get_repo(login, name)
        if existing is not None:
            self._console.success(f"remote repository {login}/{name} found")
            return Ok(existing)

        self._console.info(f"creating remote repository {login}/{name}")
        if owner_kind == OWNER_USER:
            created = backend.create_repo(name)
        else:
            created = backend.create_org_repo(name, login)
        if created is None:
            return Err(
                AuthError(
                    f"could not create remote repository {login}/{name}",
                    hint="Check the token's repo scope and the organization permissions",
                )
            )
        self._console.success(f"remote repository {login}/{name} created")
        return Ok(created)

    def _ensure_gitignore(self) -> None:
        path = self._ctx.working_dir / ".gitignore"
        if path.exists():
            return
        try:
            atomic_write_text(path, DEFAULT_GITIGNORE)
        except OSError as e:
            self._console.warning(f"could not write .gitignore: {e}")
            return
        self._console.success("wrote default .gitignore")

    def _ensure_local_repo(self, clone_url: str) -> Result[None, ReleaseFailure]:
        if self._repo.exists():
            self._console.success("git repository already initialised")
            return Ok(None)

        self._console.print("git init", Style.DIM)
        inited = self._repo.init()
        if isinstance(inited, Err):
            return Err(git_failure(inited.error))

        remotes = self._repo.remotes()
        if isinstance(remotes, Err):
            return Err(git_failure(remotes.error))
        if self._ctx.remote_name not in remotes.value:
            self._console.print(f"git remote add {self._ctx.remote_name} {clone_url}", Style.DIM)
            added = self._repo.add_remote(self._ctx.remote_name, clone_url)
            if isinstance(added, Err):
                return Err(git_failure(added.error))

        return self._initial_commit()

    def _initial_commit(self) -> Result[None, ReleaseFailure]:
        for step in (self._sync.ensure_no_conflicts, self._sync.ensure_clean):
            result = step()
            if isinstance(result, Err):
                return result

        has_master = self._sync.has_remote_branch(self._release_branch)
        if isinstance(has_master, Err):
            return has_master
        if has_master.value:
            merged = self._sync.merge_remote(self._release_branch, allow_unrelated_histories=True)
            if isinstance(merged, Err):
                return merged
            return Ok(None)

        current = self._repo.current_branch()
        if current is not None and current != self._release_branch:
            switched = self._sync.switch_to(self._release_branch)
            if isinstance(switched, Err):
                return switched
        return self._sync.push(self._release_branch)


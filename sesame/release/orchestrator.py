"""Top-level release state machine.

    PREPARING -> COMMITTING -> PUBLISHING -> PROMOTING -> DONE
                      any step may end in FAILED

PREPARING   validate package.json and the build command; prepare the
            hosted repository and the local git repository
COMMITTING  negotiate the development branch, then reconcile local and
            remote state and push it
PUBLISHING  run one remote build session to a terminal outcome; after a
            successful build, upload the template when ssh options are set
PROMOTING   production releases with a successful build only: tag,
            merge into the release branch, delete the dev branch

Nothing is retried. A failure stops the run with its phase and cause; the
operator fixes the cause and re-runs, and every step is safe to repeat.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from sesame.core.cache import CacheStore
from sesame.core.config import Config
from sesame.core.result import Err, Ok, Result
from sesame.git.repository import Repository
from sesame.hosting.backends import create_backend
from sesame.hosting.http import ApiClient, HttpClient
from sesame.output.console import ConsoleProtocol, Style
from sesame.output.errors import print_release_failure
from sesame.release.build_session import (
    BuildQuery,
    BuildSession,
    BuildSessionClient,
    confirm_production_overwrite,
)
from sesame.release.errors import PhaseFailure, ReleaseFailure, git_failure
from sesame.release.fsm import FINISH, StepOutcome, advance, run_state_machine
from sesame.release.manifest import load_manifest, validate_build_cmd
from sesame.release.model import BuildOutcome, PublishOptions, ReleaseContext, ReleasePhase
from sesame.release.prompts import Choice, Prompter
from sesame.release.promotion import PromotionEngine
from sesame.release.remote_setup import BackendFactory, RemoteSetup
from sesame.release.sync import SyncEngine
from sesame.release.template import TemplateUploader
from sesame.release.timeouts import BUILD_API_TIMEOUT_SECONDS
from sesame.release.transport import BuildTransport, SocketIOTransport
from sesame.release.version import BumpChooser, Negotiation, VersionNegotiator, prompt_bump_kind

TransportFactory = Callable[[], BuildTransport]

PUBLISH_TARGETS = (Choice(value="oss", label="OSS"),)

_Step = Result[StepOutcome[ReleasePhase], PhaseFailure]


@dataclass
class RunReport:
    phase: ReleasePhase = ReleasePhase.PREPARING
    outcome: BuildOutcome = BuildOutcome.PENDING
    negotiation: Negotiation | None = None
    failure: PhaseFailure | None = None
    session: BuildSession | None = None
    template_uploaded: bool = False
    promoted: bool = False
    elapsed_seconds: float = 0.0
    transitions: list[tuple[ReleasePhase, ReleasePhase]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.phase is ReleasePhase.DONE


class ReleaseOrchestrator:
    def __init__(
        self,
        *,
        config: Config,
        working_dir: Path,
        options: PublishOptions,
        console: ConsoleProtocol,
        prompter: Prompter,
        choose_bump: BumpChooser | None = None,
        prepare_remote: bool = True,
        backend_factory: BackendFactory = create_backend,
        transport_factory: TransportFactory = SocketIOTransport,
        build_api: HttpClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._working_dir = working_dir
        self._options = options
        self._console = console
        self._prompter = prompter
        self._choose_bump = choose_bump or prompt_bump_kind(prompter)
        self._prepare_remote = prepare_remote
        self._backend_factory = backend_factory
        self._transport_factory = transport_factory
        self._build_api = build_api
        self._clock = clock

        self._repo = Repository(working_dir)
        self._cache = CacheStore(config.home_dir)
        self._report = RunReport()
        self._context: ReleaseContext | None = None
        self._build_cmd = ""
        self._sync: SyncEngine | None = None

    @property
    def context(self) -> ReleaseContext | None:
        return self._context

    def run(self) -> RunReport:
        """Run the release to DONE or FAILED and return what happened."""
        started = self._clock()

        handlers = {
            ReleasePhase.PREPARING.value: self._prepare,
            ReleasePhase.COMMITTING.value: self._commit,
            ReleasePhase.PUBLISHING.value: self._publish_build,
            ReleasePhase.PROMOTING.value: self._promote,
            ReleasePhase.DONE.value: lambda _: Ok(FINISH),
        }
        result = run_state_machine(
            initial_state=ReleasePhase.PREPARING,
            get_step=lambda phase: phase.value,
            handlers=handlers,
            on_transition=self._on_transition,
        )

        self._report.elapsed_seconds = self._clock() - started
        match result:
            case Ok(phase):
                self._report.phase = phase
            case Err(failure):
                self._fail(failure)
        self._console.info(f"release took {int(self._report.elapsed_seconds)}s")
        return self._report

    def _on_transition(self, previous: ReleasePhase, current: ReleasePhase) -> None:
        self._report.transitions.append((previous, current))
        self._report.phase = current
        self._console.verbose(f"{previous} -> {current}")

    def _fail(self, failure: PhaseFailure) -> None:
        self._report.failure = failure
        self._report.phase = ReleasePhase.FAILED
        print_release_failure(failure, self._console)
        if self._context is not None and self._context.branch_name:
            ctx = self._context
            self._console.print(
                f"state: branch {ctx.branch_name}, version {ctx.current_version}", Style.DIM
            )

    def _failed(self, phase: ReleasePhase, error: ReleaseFailure) -> _Step:
        return Err(PhaseFailure(phase=phase.value, error=error))

    def _require_sync(self) -> tuple[ReleaseContext, SyncEngine]:
        if self._context is None or self._sync is None:
            raise RuntimeError("release context is created in the preparing phase")
        return self._context, self._sync

    # -- phases ---------------------------------------------------------------

    def _prepare(self, phase: ReleasePhase) -> _Step:
        self._console.header("Prepare")
        manifest = load_manifest(self._working_dir)
        if isinstance(manifest, Err):
            return self._failed(phase, manifest.error)
        self._console.success(f"{manifest.value.name}@{manifest.value.version}")

        build_cmd = validate_build_cmd(manifest.value, self._options.build_cmd)
        if isinstance(build_cmd, Err):
            return self._failed(phase, build_cmd.error)
        self._build_cmd = build_cmd.value
        self._console.success(f"build command: {self._build_cmd}")

        self._context = ReleaseContext(
            project_name=manifest.value.name,
            current_version=manifest.value.version,
            working_dir=self._working_dir,
            remote_name=self._config.remote_name,
        )
        self._sync = SyncEngine(
            repo=self._repo,
            context=self._context,
            console=self._console,
            prompter=self._prompter,
            release_branch=self._config.release_branch,
        )

        if self._prepare_remote:
            try:
                self._config.home_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self._console.warning(f"could not create {self._config.home_dir}: {e}")
            remote = RemoteSetup(
                context=self._context,
                repo=self._repo,
                sync=self._sync,
                cache=self._cache,
                console=self._console,
                prompter=self._prompter,
                options=self._options,
                release_branch=self._config.release_branch,
                backend_factory=self._backend_factory,
            ).run()
            if isinstance(remote, Err):
                return self._failed(phase, remote.error)

        return Ok(advance(ReleasePhase.COMMITTING))

    def _commit(self, phase: ReleasePhase) -> _Step:
        self._console.header("Commit")
        context, sync = self._require_sync()

        negotiated = VersionNegotiator(
            context=context,
            sync=sync,
            console=self._console,
            choose_bump=self._choose_bump,
        ).run()
        if isinstance(negotiated, Err):
            return self._failed(phase, negotiated.error)
        self._report.negotiation = negotiated.value

        committed = sync.commit_sequence()
        if isinstance(committed, Err):
            return self._failed(phase, committed.error)

        return Ok(advance(ReleasePhase.PUBLISHING))

    def _publish_target(self) -> str:
        target = self._cache.read("publish_target")
        if target is None or self._options.refresh_publish_type:
            target = self._prompter.select("Publish target", PUBLISH_TARGETS)
            written = self._cache.write("publish_target", target)
            if isinstance(written, Err):
                self._console.warning(written.error.message)
        return target

    def _publish_build(self, phase: ReleasePhase) -> _Step:
        self._console.header("Publish")
        context, _ = self._require_sync()
        branch = context.branch_name or ""

        target = self._publish_target()
        self._console.success(f"publish target: {target}")

        build_api = self._build_api or ApiClient(
            self._config.api_base_url, timeout=BUILD_API_TIMEOUT_SECONDS
        )
        if self._options.prod:
            gate = confirm_production_overwrite(
                http=build_api,
                prompter=self._prompter,
                console=self._console,
                project_name=context.project_name,
            )
            if isinstance(gate, Err):
                return self._failed(phase, gate.error)

        remote_url = self._repo.remote_url(context.remote_name)
        if isinstance(remote_url, Err):
            return self._failed(phase, git_failure(remote_url.error))

        query = BuildQuery(
            repo=remote_url.value,
            name=context.project_name,
            branch=branch,
            build_cmd=self._build_cmd,
            version=context.current_version,
            target_type=target,
            prod=self._options.prod,
        )
        session = BuildSessionClient(
            transport=self._transport_factory(),
            console=self._console,
            endpoint=self._config.build_server_url,
            connect_timeout=self._config.connect_timeout_seconds,
        ).run(query)
        self._report.session = session
        self._report.outcome = session.outcome

        if not session.succeeded:
            self._console.warning(f"build {session.outcome}; promotion skipped")
            return Ok(advance(ReleasePhase.DONE))

        destination = self._options.template_destination
        if destination is not None:
            uploaded = TemplateUploader(
                http=build_api, console=self._console, home_dir=self._config.home_dir
            ).upload(
                project_name=context.project_name,
                version=context.current_version,
                prod=self._options.prod,
                destination=destination,
            )
            if isinstance(uploaded, Err):
                return self._failed(phase, uploaded.error)
            self._report.template_uploaded = uploaded.value

        if not self._options.prod:
            return Ok(advance(ReleasePhase.DONE))
        return Ok(advance(ReleasePhase.PROMOTING))

    def _promote(self, phase: ReleasePhase) -> _Step:
        self._console.header("Promote")
        context, sync = self._require_sync()
        if context.branch_name is None:
            raise RuntimeError("promotion requires a negotiated branch")

        promoted = PromotionEngine(
            repo=self._repo,
            sync=sync,
            console=self._console,
            release_branch=self._config.release_branch,
        ).promote(context.current_version, context.branch_name)
        if isinstance(promoted, Err):
            return self._failed(phase, promoted.error)

        self._report.promoted = True
        self._console.success(f"released {context.project_name}@{context.current_version}")
        return Ok(advance(ReleasePhase.DONE))

"""Client side of one remote build.

`BuildSessionClient.run()` is a single blocking call that drives a session
through Connecting -> Connected -> Building and returns once a terminal
outcome is known:

    Succeeded     buildSuccess received
    Failed        buildError received
    TimedOut      no connect acknowledgement within the connect timeout
    Disconnected  the service closed the connection, or a connection error

The first terminal event wins; later ones are ignored. The transport is
closed on every exit path, and closing twice is harmless.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from sesame.core.result import Err, Ok, Result
from sesame.core.structured import as_obj_list, as_str_dict, get_str, get_table
from sesame.hosting.http import HttpClient
from sesame.output.console import ConsoleProtocol, Style
from sesame.release.errors import NetworkError, OperatorAbort, ReleaseFailure
from sesame.release.model import BuildOutcome
from sesame.release.prompts import Choice, Prompter
from sesame.release.timeouts import BUILD_CONNECT_TIMEOUT_SECONDS, BUILD_EVENT_POLL_SECONDS
from sesame.release.transport import (
    EVENT_CONNECT,
    EVENT_DISCONNECT,
    EVENT_ERROR,
    BuildEvent,
    BuildTransport,
)

Clock = Callable[[], float]


class ServerEvent:
    """Event names of the build service wire contract."""

    CONNECT = EVENT_CONNECT
    DISCONNECT = EVENT_DISCONNECT
    ERROR = EVENT_ERROR
    BUILD = "build"
    BUILDING = "building"
    BUILD_ERROR = "buildError"
    BUILD_SUCCESS = "buildSuccess"


class SessionState(StrEnum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BUILDING = "building"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class BuildQuery:
    """Connection parameters understood by the build service."""

    repo: str
    name: str
    branch: str
    build_cmd: str
    version: str
    target_type: str
    prod: bool

    def as_params(self) -> dict[str, str]:
        return {
            "repo": self.repo,
            "name": self.name,
            "branch": self.branch,
            "buildCmd": self.build_cmd,
            "version": self.version,
            "type": self.target_type,
            "prod": "true" if self.prod else "false",
        }


def _empty_log() -> list[tuple[str, str | None, str | None]]:
    return []


@dataclass
class BuildSession:
    endpoint: str
    query: BuildQuery
    session_id: str | None = None
    state: SessionState = SessionState.CONNECTING
    outcome: BuildOutcome = BuildOutcome.PENDING
    log: list[tuple[str, str | None, str | None]] = field(default_factory=_empty_log)

    def resolve(self, outcome: BuildOutcome) -> bool:
        """Set the terminal outcome. Returns False if one was already set."""
        if self.outcome.is_terminal or not outcome.is_terminal:
            return False
        self.outcome = outcome
        return True

    @property
    def succeeded(self) -> bool:
        return self.outcome is BuildOutcome.SUCCEEDED


class Deadline:
    """Connect timer. `cancel()` disarms it; cancelling twice is a no-op."""

    def __init__(self, seconds: float, clock: Clock) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return not self._cancelled and self.remaining() <= 0.0


def parse_message(payload: object) -> tuple[str | None, str | None]:
    """Extract `(action, message)` from `{data: {action, payload: {message}}}`."""
    root = as_str_dict(payload)
    if root is None:
        return (None, None)
    data = get_table(root, "data") or {}
    inner = get_table(data, "payload") or {}
    return (get_str(data, "action"), get_str(inner, "message"))


class BuildSessionClient:
    def __init__(
        self,
        *,
        transport: BuildTransport,
        console: ConsoleProtocol,
        endpoint: str,
        connect_timeout: float = BUILD_CONNECT_TIMEOUT_SECONDS,
        poll_seconds: float = BUILD_EVENT_POLL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self._transport = transport
        self._console = console
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._poll_seconds = poll_seconds
        self._clock = clock

    def run(self, query: BuildQuery) -> BuildSession:
        session = BuildSession(endpoint=self._endpoint, query=query)
        try:
            self._drive(session)
        finally:
            self._teardown(session)
        self._console.verbose(f"build session outcome: {session.outcome}")
        return session

    def _drive(self, session: BuildSession) -> None:
        self._console.info(f"connecting to build service {self._endpoint}")
        self._console.verbose(f"connect timeout {self._connect_timeout:g}s")
        # Armed before open(): time spent in the handshake counts against it.
        deadline = Deadline(self._connect_timeout, self._clock)
        opened = self._transport.open(self._endpoint, session.query.as_params())
        if isinstance(opened, Err):
            if deadline.expired:
                self._console.error("build service connect timed out")
                session.resolve(BuildOutcome.TIMED_OUT)
                return
            self._console.error(f"build service unreachable: {opened.error.message}")
            session.resolve(BuildOutcome.DISCONNECTED)
            return

        while not session.outcome.is_terminal:
            if session.state is SessionState.CONNECTING:
                if deadline.expired:
                    self._console.error("build service connect timed out")
                    session.resolve(BuildOutcome.TIMED_OUT)
                    return
                wait = deadline.remaining()
            else:
                wait = self._poll_seconds

            event = self._transport.receive(wait)
            if event is not None:
                self._handle(session, deadline, event)

    def _handle(self, session: BuildSession, deadline: Deadline, event: BuildEvent) -> None:
        action, message = parse_message(event.payload)
        session.log.append((event.name, action, message))

        match event.name:
            case ServerEvent.CONNECT:
                if session.state is not SessionState.CONNECTING:
                    return
                deadline.cancel()
                session.session_id = self._transport.session_id
                session.state = SessionState.CONNECTED
                self._console.success(f"connected (session {session.session_id})")
                self._transport.emit(ServerEvent.BUILD)
                session.state = SessionState.BUILDING
            case ServerEvent.DISCONNECT:
                self._console.info("build service disconnected")
                session.resolve(BuildOutcome.DISCONNECTED)
            case ServerEvent.ERROR:
                self._console.error(f"build service error: {event.payload}")
                session.resolve(BuildOutcome.DISCONNECTED)
            case ServerEvent.BUILD_ERROR:
                self._console.error(_describe(action, message, "build failed"))
                session.resolve(BuildOutcome.FAILED)
            case ServerEvent.BUILD_SUCCESS:
                self._console.success(_describe(action, message, "build succeeded"))
                session.resolve(BuildOutcome.SUCCEEDED)
            case ServerEvent.BUILDING:
                self._console.print(_describe(action, message, str(event.payload)), Style.DIM)
            case _ if event.name == ServerEvent.BUILD or event.name == session.session_id:
                self._console.success(_describe(action, message, event.name))
            case _:
                self._console.verbose(f"ignored event {event.name}")

    def _teardown(self, session: BuildSession) -> None:
        session.state = SessionState.CLOSED
        self._transport.close()


def _describe(action: str | None, message: str | None, fallback: str) -> str:
    if action and message:
        return f"{action}: {message}"
    return action or message or fallback


def find_production_artifacts(
    http: HttpClient, project_name: str
) -> Result[bool, NetworkError]:
    """True if the build service already holds production artifacts for the project."""
    response = http.get("project/cos", {"name": project_name, "type": "prod"})
    if isinstance(response, Err):
        return Err(NetworkError(operation="GET project/cos", message=response.error.message))

    body = as_str_dict(response.value.data) or {}
    if body.get("code") != 0:
        return Ok(False)
    items = as_obj_list(body.get("data"))
    return Ok(bool(items))


def confirm_production_overwrite(
    *,
    http: HttpClient,
    prompter: Prompter,
    console: ConsoleProtocol,
    project_name: str,
) -> Result[None, ReleaseFailure]:
    """Ask before overwriting an existing production release.

    Runs before any build connection is opened; declining aborts the run.
    """
    found = find_production_artifacts(http, project_name)
    if isinstance(found, Err):
        return found
    if not found.value:
        return Ok(None)

    console.warning(f"a production release of {project_name} already exists")
    overwrite = prompter.select(
        f"Overwrite the production release of {project_name}?",
        [Choice(value=False, label="Abort publish"), Choice(value=True, label="Overwrite")],
    )
    if not overwrite:
        return Err(OperatorAbort("publish aborted: production release left untouched"))
    return Ok(None)

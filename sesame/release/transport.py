"""Persistent connection to the build service.

`BuildTransport` turns the service's Socket.IO events into a queue the
session client can drain with a timeout. `SocketIOTransport` is the
production implementation on top of python-socketio's threaded client;
`ScriptedTransport` replays a fixed event sequence for tests.
"""

from __future__ import annotations

import queue
import threading
import urllib.parse
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import socketio
from socketio import exceptions as socketio_exceptions

from sesame.core.result import Err, Ok, Result

__all__ = [
    "BuildEvent",
    "BuildTransport",
    "ScriptedTransport",
    "SocketIOTransport",
    "TransportError",
    "EVENT_CONNECT",
    "EVENT_DISCONNECT",
    "EVENT_ERROR",
]

EVENT_CONNECT = "connect"
EVENT_DISCONNECT = "disconnect"
EVENT_ERROR = "error"


@dataclass(frozen=True, slots=True)
class BuildEvent:
    """One server event: its name and the first payload argument."""

    name: str
    payload: object = None


@dataclass(frozen=True, slots=True)
class TransportError:
    url: str
    message: str


class BuildTransport(Protocol):
    @property
    def session_id(self) -> str | None:
        """Server-assigned id of the connection, once acknowledged."""
        ...

    def open(self, url: str, query: Mapping[str, str]) -> Result[None, TransportError]:
        """Start connecting; the acknowledgement arrives as a `connect` event."""
        ...

    def emit(self, event: str) -> None: ...

    def receive(self, timeout: float) -> BuildEvent | None:
        """Next event, or None if nothing arrived within `timeout` seconds."""
        ...

    def close(self) -> None:
        """Tear the connection down. Calling it again is a no-op."""
        ...


def build_url(url: str, query: Mapping[str, str]) -> str:
    if not query:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{urllib.parse.urlencode(dict(query))}"


class SocketIOTransport:
    """python-socketio client feeding a thread-safe event queue."""

    def __init__(self, *, transports: Sequence[str] | None = None) -> None:
        self._transports = list(transports) if transports else None
        self._events: queue.Queue[BuildEvent] = queue.Queue()
        self._client: socketio.Client | None = None
        self._connector: threading.Thread | None = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def session_id(self) -> str | None:
        if self._client is None:
            return None
        return self._client.get_sid()

    def open(self, url: str, query: Mapping[str, str]) -> Result[None, TransportError]:
        """Start the handshake on a background thread and return at once.

        engine.io performs its handshake synchronously inside `connect()`;
        running it off the caller's thread keeps the caller's connect
        deadline authoritative. A failed handshake is queued as an `error`
        event.
        """
        client = socketio.Client(reconnection=False)
        events = self._events

        def on_connect() -> None:
            events.put(BuildEvent(EVENT_CONNECT))

        def on_disconnect(*args: object) -> None:
            events.put(BuildEvent(EVENT_DISCONNECT, args[0] if args else None))

        def on_connect_error(data: object = None) -> None:
            events.put(BuildEvent(EVENT_ERROR, data))

        def on_any(event: str, *args: object) -> None:
            events.put(BuildEvent(event, args[0] if args else None))

        client.on("connect", on_connect)
        client.on("disconnect", on_disconnect)
        client.on("connect_error", on_connect_error)
        client.on("*", on_any)
        self._client = client

        self._connector = threading.Thread(
            target=self._connect,
            args=(client, build_url(url, query)),
            name="sesame-build-connect",
            daemon=True,
        )
        self._connector.start()
        return Ok(None)

    def _connect(self, client: socketio.Client, full_url: str) -> None:
        try:
            client.connect(full_url, transports=self._transports, wait=False)
        except socketio_exceptions.ConnectionError as e:
            self._events.put(BuildEvent(EVENT_ERROR, str(e) or "connection refused"))
            return
        with self._lock:
            late = self._closed
        if late:
            client.disconnect()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the handshake attempt to finish. False if it is still running."""
        if self._connector is None:
            return True
        self._connector.join(timeout)
        return not self._connector.is_alive()

    def emit(self, event: str) -> None:
        if self._client is None or self._closed:
            return
        self._client.emit(event)

    def receive(self, timeout: float) -> BuildEvent | None:
        try:
            return self._events.get(timeout=max(timeout, 0.0))
        except queue.Empty:
            return None

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self._client is not None:
            self._client.disconnect()


def _empty_events() -> list[BuildEvent | None]:
    return []


def _empty_emitted() -> list[str]:
    return []


@dataclass
class ScriptedTransport:
    """Transport that replays events; `None` entries simulate silence.

    Attributes:
        events: Events returned by successive receive() calls.
        open_error: When set, open() fails with this message.
        on_open: Called inside open(); tests use it to model a slow handshake.
        on_receive: Called with the timeout of each receive(); tests use it
            to advance a fake clock.
    """

    events: list[BuildEvent | None] = field(default_factory=_empty_events)
    sid: str = "sid-1"
    open_error: str | None = None
    on_open: Callable[[], None] | None = None
    on_receive: Callable[[float], None] | None = None
    emitted: list[str] = field(default_factory=_empty_emitted)
    opened_url: str | None = None
    opened_query: dict[str, str] | None = None
    close_calls: int = 0
    connected: bool = False

    @property
    def session_id(self) -> str | None:
        return self.sid if self.connected else None

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def open(self, url: str, query: Mapping[str, str]) -> Result[None, TransportError]:
        self.opened_url = url
        self.opened_query = dict(query)
        if self.on_open is not None:
            self.on_open()
        if self.open_error is not None:
            return Err(TransportError(url=url, message=self.open_error))
        return Ok(None)

    def emit(self, event: str) -> None:
        self.emitted.append(event)

    def receive(self, timeout: float) -> BuildEvent | None:
        if self.on_receive is not None:
            self.on_receive(timeout)
        if not self.events:
            return None
        event = self.events.pop(0)
        if event is not None and event.name == EVENT_CONNECT:
            self.connected = True
        return event

    def close(self) -> None:
        self.close_calls += 1

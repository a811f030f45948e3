from __future__ import annotations

import threading
import time
from collections.abc import Callable
from unittest.mock import MagicMock, patch

from socketio import exceptions as socketio_exceptions

from sesame.core.result import Ok
from sesame.output.console import MockConsole
from sesame.release.build_session import BuildQuery, BuildSessionClient
from sesame.release.model import BuildOutcome
from sesame.release.transport import BuildEvent, SocketIOTransport, build_url


def test_build_url_encodes_query() -> None:
    assert (
        build_url("http://h:7001", {"name": "demo app", "prod": "false"})
        == "http://h:7001?name=demo+app&prod=false"
    )


def test_build_url_without_query() -> None:
    assert build_url("http://h:7001", {}) == "http://h:7001"


def _handlers(client: MagicMock) -> dict[str, Callable[..., None]]:
    return {c.args[0]: c.args[1] for c in client.on.call_args_list}


def test_events_are_queued_in_arrival_order() -> None:
    client = MagicMock()
    client.get_sid.return_value = "abc"
    with patch("socketio.Client", return_value=client):
        transport = SocketIOTransport()
        assert transport.open("http://h:7001", {"name": "demo"}) == Ok(None)

    assert transport.join(2.0)
    client.connect.assert_called_once_with("http://h:7001?name=demo", transports=None, wait=False)
    handlers = _handlers(client)
    handlers["connect"]()
    handlers["*"]("building", {"data": {}})
    handlers["disconnect"]()

    assert transport.receive(0.5) == BuildEvent("connect")
    assert transport.receive(0.5) == BuildEvent("building", {"data": {}})
    assert transport.receive(0.5) == BuildEvent("disconnect")
    assert transport.receive(0.01) is None
    assert transport.session_id == "abc"


def test_connection_error_arrives_as_error_event() -> None:
    client = MagicMock()
    client.connect.side_effect = socketio_exceptions.ConnectionError("refused")
    with patch("socketio.Client", return_value=client):
        transport = SocketIOTransport()
        assert transport.open("http://h:7001", {}) == Ok(None)

    assert transport.receive(2.0) == BuildEvent("error", "refused")


def test_close_is_idempotent() -> None:
    client = MagicMock()
    with patch("socketio.Client", return_value=client):
        transport = SocketIOTransport()
        transport.open("http://h:7001", {})
    assert transport.join(2.0)

    transport.close()
    transport.close()
    transport.emit("build")

    client.disconnect.assert_called_once_with()
    client.emit.assert_not_called()


def test_unanswered_handshake_times_out_at_the_connect_timeout() -> None:
    release = threading.Event()
    client = MagicMock()
    client.connect.side_effect = lambda *args, **kwargs: release.wait(5.0)
    query = BuildQuery(
        repo="git@github.com:acme/demo-app.git",
        name="demo-app",
        branch="dev/1.0.0",
        build_cmd="npm run build",
        version="1.0.0",
        target_type="oss",
        prod=False,
    )

    with patch("socketio.Client", return_value=client):
        started = time.monotonic()
        session = BuildSessionClient(
            transport=SocketIOTransport(),
            console=MockConsole(),
            endpoint="http://h:7001",
            connect_timeout=0.3,
        ).run(query)
        elapsed = time.monotonic() - started
    release.set()

    assert session.outcome is BuildOutcome.TIMED_OUT
    assert elapsed < 2.0
    client.emit.assert_not_called()

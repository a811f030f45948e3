"""JSON-over-HTTP client for hosting and build-service APIs.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- ApiClient: Real implementation using urllib
- MockHttpClient: Scripted implementation for tests

Non-2xx responses are not errors at this layer: they come back as an
`ApiResponse` carrying the status so providers can normalize them.
Only transport failures (DNS, refused, timeout) produce `HttpError`, except
for `download`, where a body from a non-2xx response is never useful.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from sesame.core.result import Err, Ok, Result

__all__ = [
    "ApiClient",
    "ApiResponse",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
]

_DEFAULT_TIMEOUT_SECONDS = 5.0
_USER_AGENT = "sesame-cli"


@dataclass(frozen=True, slots=True)
class HttpError:
    """Transport-level HTTP failure.

    Attributes:
        url: The URL that failed
        message: Human-readable error message
    """

    url: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """A decoded HTTP response."""

    status: int
    data: object

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class HttpClient(Protocol):
    def get(
        self, path: str, params: Mapping[str, str | int] | None = None
    ) -> Result[ApiResponse, HttpError]:
        """GET `path` relative to the client's base URL."""
        ...

    def post(
        self, path: str, body: Mapping[str, object] | None = None
    ) -> Result[ApiResponse, HttpError]:
        """POST a JSON body to `path` relative to the client's base URL."""
        ...

    def download(self, url: str, dest: Path) -> Result[Path, HttpError]:
        """GET an absolute URL into `dest`; non-2xx is an error."""
        ...


class ApiClient:
    """urllib-based JSON client bound to a base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        self._headers.update(headers or {})
        self._params = dict(params or {})
        self._ssl_context = ssl.create_default_context()

    def url_for(self, path: str, params: Mapping[str, str | int] | None = None) -> str:
        query = {**self._params, **{k: str(v) for k, v in (params or {}).items()}}
        url = f"{self.base_url}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{urllib.parse.urlencode(query)}"
        return url

    def get(
        self, path: str, params: Mapping[str, str | int] | None = None
    ) -> Result[ApiResponse, HttpError]:
        return self._request("GET", self.url_for(path, params), None)

    def post(
        self, path: str, body: Mapping[str, object] | None = None
    ) -> Result[ApiResponse, HttpError]:
        payload = json.dumps(dict(body or {})).encode("utf-8")
        return self._request("POST", self.url_for(path), payload)

    def download(self, url: str, dest: Path) -> Result[Path, HttpError]:
        headers = {"User-Agent": self._headers["User-Agent"]}
        fetched = self._open(urllib.request.Request(url, headers=headers, method="GET"))
        if isinstance(fetched, Err):
            return fetched
        status, raw = fetched.value
        if not 200 <= status < 300:
            return Err(HttpError(url=url, message=f"HTTP {status}"))
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(raw)
        except OSError as e:
            return Err(HttpError(url=url, message=f"cannot write {dest}: {e}"))
        return Ok(dest)

    def _request(
        self, method: str, url: str, payload: bytes | None
    ) -> Result[ApiResponse, HttpError]:
        headers = dict(self._headers)
        if payload is not None:
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(url, data=payload, headers=headers, method=method)
        fetched = self._open(req)
        if isinstance(fetched, Err):
            return fetched
        status, raw = fetched.value
        return Ok(ApiResponse(status=status, data=_decode(raw)))

    def _open(self, req: urllib.request.Request) -> Result[tuple[int, bytes], HttpError]:
        url = req.full_url
        try:
            opened = urllib.request.urlopen(req, timeout=self.timeout, context=self._ssl_context)
            with opened as resp:
                return Ok((resp.status, resp.read()))
        except urllib.error.HTTPError as e:
            return Ok((e.code, e.read()))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, message=str(e)))


def _decode(raw: bytes) -> object:
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _empty_calls() -> list[tuple[str, str, object]]:
    return []


@dataclass
class MockHttpClient:
    """Scripted HTTP client for testing.

    Usage:
        client = MockHttpClient()
        client.set("GET", "/user", ApiResponse(200, {"login": "octocat"}))
        assert client.get("/user") == Ok(ApiResponse(200, {"login": "octocat"}))
    """

    responses: dict[tuple[str, str], ApiResponse | HttpError] = field(default_factory=dict)
    calls: list[tuple[str, str, object]] = field(default_factory=_empty_calls)
    downloads: dict[str, bytes | HttpError] = field(default_factory=dict)

    def set(self, method: str, path: str, response: ApiResponse | HttpError) -> None:
        self.responses[(method, path)] = response

    def get(
        self, path: str, params: Mapping[str, str | int] | None = None
    ) -> Result[ApiResponse, HttpError]:
        self.calls.append(("GET", path, dict(params or {})))
        return self._lookup("GET", path)

    def post(
        self, path: str, body: Mapping[str, object] | None = None
    ) -> Result[ApiResponse, HttpError]:
        self.calls.append(("POST", path, dict(body or {})))
        return self._lookup("POST", path)

    def download(self, url: str, dest: Path) -> Result[Path, HttpError]:
        """Write the scripted body for `url` to `dest`."""
        self.calls.append(("DOWNLOAD", url, str(dest)))
        body = self.downloads.get(url)
        if body is None:
            return Err(HttpError(url=url, message="HTTP 404"))
        if isinstance(body, HttpError):
            return Err(body)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(body)
        return Ok(dest)

    def _lookup(self, method: str, path: str) -> Result[ApiResponse, HttpError]:
        response = self.responses.get((method, path))
        if response is None:
            return Ok(ApiResponse(status=404, data={"message": "Not Found"}))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

"""HTTP client for spells with scheme checks and response size limits."""

from __future__ import annotations

import http.client
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from llmspell.stdlib.state import ScriptState, _as_string

_MB = 1024 * 1024
_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
_DIRECT = urllib.request.build_opener(urllib.request.ProxyHandler({}))
_PROXIED = urllib.request.build_opener()


class HTTPRequestError(Exception):
    """A request was refused, failed, or answered with an error status."""


@dataclass
class HTTPConfig:
    """Timeout in seconds, response size cap, allowed schemes and User-Agent."""

    timeout: float = 30.0
    max_response_size: int = 10 * _MB
    allowed_schemes: list[str] = field(default_factory=lambda: ["http", "https"])
    user_agent: str = "llmspell/1.0"

    @classmethod
    def default(cls) -> HTTPConfig:
        return cls()


@dataclass
class HTTPResponse:
    """Status, body and first value of each response header."""

    status: int
    body: str
    headers: dict[str, str]


@dataclass
class _Raw:
    status: int
    reason: str
    body: bytes
    headers: dict[str, str]

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", "replace")


def _canonical(key: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def _fetch(
    method: str,
    url: str,
    body: bytes | None,
    headers: Iterable[tuple[str, str]],
    timeout: float,
    limit: int,
) -> _Raw:
    try:
        host = urllib.parse.urlsplit(url).hostname
    except ValueError as exc:
        raise HTTPRequestError(str(exc)) from exc
    opener = _DIRECT if host in _LOCAL_HOSTS else _PROXIED
    request = urllib.request.Request(url, data=body, method=method)
    for key, value in headers:
        request.add_header(key, value)
    try:
        response = opener.open(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        response = exc
    except urllib.error.URLError as exc:
        raise HTTPRequestError(str(exc.reason)) from exc
    except (OSError, ValueError, http.client.HTTPException) as exc:
        raise HTTPRequestError(str(exc)) from exc
    try:
        data = response.read(limit) if limit > 0 else b""
    except (OSError, http.client.HTTPException) as exc:
        raise HTTPRequestError(str(exc)) from exc
    finally:
        response.close()
    found: dict[str, str] = {}
    for key, value in (response.headers or {}).items():
        found.setdefault(_canonical(key), value)
    return _Raw(response.status, response.reason or "", data, found)


def _status_error(raw: _Raw) -> str:
    return f"HTTP {raw.status}: {raw.status} {raw.reason}"


class HTTPClient:
    """Issues requests to URLs whose scheme the configuration allows."""

    def __init__(self, config: HTTPConfig | None = None) -> None:
        self.config = config if config is not None else HTTPConfig.default()

    def validate_url(self, url: str) -> urllib.parse.SplitResult:
        """Parse ``url`` and check its scheme; raises HTTPRequestError."""
        if not isinstance(url, str):
            raise TypeError(f"string expected, got {type(url).__name__}")
        try:
            parts = urllib.parse.urlsplit(url)
        except ValueError as exc:
            raise HTTPRequestError(f"invalid URL: {exc}") from exc
        if parts.scheme not in self.config.allowed_schemes:
            raise HTTPRequestError(f"scheme {parts.scheme} not allowed")
        return parts

    def _send(
        self,
        method: str,
        url: str,
        body: bytes | None = None,
        headers: Iterable[tuple[str, str]] = (),
    ) -> _Raw:
        merged = [("User-Agent", self.config.user_agent), *headers]
        return _fetch(
            method, url, body, merged, self.config.timeout, self.config.max_response_size
        )

    def get(self, url: str) -> str:
        """Return the body of a GET; error statuses raise HTTPRequestError."""
        self.validate_url(url)
        raw = self._send("GET", url)
        if raw.status >= 400:
            raise HTTPRequestError(_status_error(raw))
        return raw.text

    def post(self, url: str, body: str, content_type: str = "application/json") -> str:
        """Return the body of a POST; error statuses raise with the body included."""
        if not isinstance(body, str):
            raise TypeError(f"string expected, got {type(body).__name__}")
        self.validate_url(url)
        raw = self._send("POST", url, body.encode("utf-8"), [("Content-Type", content_type)])
        if raw.status >= 400:
            raise HTTPRequestError(f"{_status_error(raw)} - {raw.text}")
        return raw.text

    def request(self, options: Mapping[str, Any]) -> HTTPResponse:
        """Perform a request described by method, url, headers and body options."""
        method = _as_string(options.get("method")).upper() or "GET"
        if options.get("url") is None:
            raise HTTPRequestError("url is required")
        url = _as_string(options["url"])
        self.validate_url(url)
        body = options.get("body")
        data = None if body is None else _as_string(body).encode("utf-8")
        headers = options.get("headers")
        pairs = (
            [(k, _as_string(v)) for k, v in headers.items() if isinstance(k, str)]
            if isinstance(headers, Mapping)
            else []
        )
        raw = self._send(method, url, data, pairs)
        return HTTPResponse(raw.status, raw.text, raw.headers)


class SimpleHTTP:
    """Plain GET with a 30 second timeout and a 10 MB response cap."""

    timeout = 30.0
    max_response_size = 10 * _MB

    def get(self, url: str) -> str:
        try:
            scheme = urllib.parse.urlsplit(url).scheme
        except ValueError as exc:
            raise HTTPRequestError(str(exc)) from exc
        if scheme not in ("http", "https"):
            raise HTTPRequestError(f'unsupported protocol scheme "{scheme}"')
        raw = _fetch("GET", url, None, [], self.timeout, self.max_response_size)
        if raw.status >= 400:
            raise HTTPRequestError(_status_error(raw))
        return raw.text


def register_http(state: ScriptState, client: HTTPClient) -> None:
    """Install ``client`` as the ``http`` module."""
    state.set_global("http", client)


def register_simple_http(state: ScriptState) -> None:
    """Install the plain ``http`` module."""
    state.set_global("http", SimpleHTTP())
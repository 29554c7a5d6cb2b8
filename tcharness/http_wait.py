"""Wait until an HTTP endpoint of the container answers as expected."""

from __future__ import annotations

import http.client
import ipaddress
import ssl
import urllib.error
import urllib.request
from contextlib import closing
from dataclasses import dataclass, field
from typing import IO, Callable

from tcharness.host_port import _as_port, _wait_for_mapped_port
from tcharness.strategy import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_STARTUP_TIMEOUT,
    Port,
    Strategy,
    StrategyTarget,
    WaitContext,
    parse_port,
)

_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "CONNECT", "OPTIONS", "TRACE"}
)
_REQUEST_TIMEOUT = 1.0


def _status_is_ok(status: int) -> bool:
    return status == 200


def _is_loopback(host: str) -> bool:
    if host.lower() == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _insecure(context: ssl.SSLContext) -> ssl.SSLContext:
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


@dataclass
class HTTPStrategy(Strategy):
    """Polls an HTTP(S) endpoint until status and body satisfy the matchers.

    A matcher left as None accepts every response.
    """

    path: str
    port: Port = field(default_factory=lambda: parse_port("80/tcp"))
    status_code_matcher: Callable[[int], bool] | None = _status_is_ok
    response_matcher: Callable[[IO[bytes]], bool] | None = None
    use_tls: bool = False
    allow_insecure: bool = False
    tls_context: ssl.SSLContext | None = None
    method: str = "GET"
    body: bytes | IO[bytes] | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None

    def with_startup_timeout(self, timeout: float) -> HTTPStrategy:
        self.timeout = timeout
        return self

    def with_port(self, port: Port | str) -> HTTPStrategy:
        self.port = _as_port(port)
        return self

    def with_status_code_matcher(self, status_code_matcher: Callable[[int], bool]) -> HTTPStrategy:
        self.status_code_matcher = status_code_matcher
        return self

    def with_response_matcher(self, matcher: Callable[[IO[bytes]], bool]) -> HTTPStrategy:
        self.response_matcher = matcher
        return self

    def with_tls(self, use_tls: bool, tls_context: ssl.SSLContext | None = None) -> HTTPStrategy:
        self.use_tls = use_tls
        if use_tls and tls_context is not None:
            self.tls_context = tls_context
        return self

    def with_allow_insecure(self, allow_insecure: bool) -> HTTPStrategy:
        self.allow_insecure = allow_insecure
        return self

    def with_method(self, method: str) -> HTTPStrategy:
        self.method = method
        return self

    def with_body(self, body: bytes | IO[bytes]) -> HTTPStrategy:
        self.body = body
        return self

    def with_poll_interval(self, poll_interval: float) -> HTTPStrategy:
        self.poll_interval = poll_interval
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        timeout = DEFAULT_STARTUP_TIMEOUT if self.timeout is None else self.timeout
        ctx = ctx.with_timeout(timeout)

        host = target.host(ctx)
        port = _wait_for_mapped_port(ctx, target, self.port, self.poll_interval)
        if port.proto != "tcp":
            raise ValueError("Cannot use HTTP client on non-TCP ports")

        if self.method not in _METHODS:
            if self.method:
                raise ValueError(f'invalid http method "{self.method}"')
            self.method = "GET"

        opener = self._build_opener(host)
        address = f"[{host}]" if ":" in host else host
        scheme = "https" if self.use_tls else "http"
        endpoint = f"{scheme}://{address}:{port.number}{self.path}"

        payload = self.body.read() if hasattr(self.body, "read") else self.body

        while True:
            ctx.sleep(self.poll_interval)
            request = urllib.request.Request(endpoint, data=payload or None, method=self.method)
            remaining = ctx.remaining()
            request_timeout = _REQUEST_TIMEOUT if remaining is None else min(_REQUEST_TIMEOUT, max(remaining, 0.001))
            try:
                response = opener.open(request, timeout=request_timeout)
            except urllib.error.HTTPError as error:
                response = error
            except (OSError, http.client.HTTPException):
                continue
            with closing(response):
                if self.status_code_matcher is not None and not self.status_code_matcher(response.getcode()):
                    continue
                if self.response_matcher is not None and not self.response_matcher(response):
                    continue
            return

    def _build_opener(self, host: str) -> urllib.request.OpenerDirector:
        context = self.tls_context
        if self.use_tls and self.allow_insecure:
            if context is None:
                context = _insecure(ssl.create_default_context())
            else:
                _insecure(context)
        proxies = {} if _is_loopback(host) else None
        return urllib.request.build_opener(
            urllib.request.ProxyHandler(proxies),
            urllib.request.HTTPSHandler(context=context),
        )


def for_http(path: str) -> HTTPStrategy:
    return HTTPStrategy(path=path)
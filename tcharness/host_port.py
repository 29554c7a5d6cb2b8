"""Wait until a container port accepts connections, from outside and inside."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass

from tcharness.strategy import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_STARTUP_TIMEOUT,
    DeadlineExceeded,
    Port,
    Strategy,
    StrategyTarget,
    WaitContext,
    parse_port,
)

logger = logging.getLogger(__name__)

_INTERNAL_CHECK_TEMPLATE = (
    "(\n"
    "\t\t\t\t\tcat /proc/net/tcp* | awk '{{print $2}}' | grep -i :{port:04x} ||\n"
    "\t\t\t\t\tnc -vz -w 1 localhost {port} ||\n"
    "\t\t\t\t\t/bin/sh -c '</dev/tcp/localhost/{port}'\n"
    "\t\t\t\t)\n"
    "\t\t\t\t"
)


def build_internal_check_command(internal_port: int) -> str:
    """Shell command that succeeds once something listens on the port inside the container."""
    return "true && " + _INTERNAL_CHECK_TEMPLATE.format(port=internal_port)


def _wait_for_mapped_port(
    ctx: WaitContext, target: StrategyTarget, port: Port, poll_interval: float
) -> Port:
    """Poll the target until the container port is bound to a host port."""
    last_error: Exception | None = None

    def lookup() -> Port | None:
        nonlocal last_error
        try:
            mapped = target.mapped_port(ctx, port)
        except Exception as exc:  # the engine may not have bound the port yet
            last_error = exc
            return None
        last_error = None
        return mapped

    mapped = lookup()
    attempt = 0
    while mapped is None:
        attempt += 1
        try:
            ctx.sleep(poll_interval)
        except DeadlineExceeded:
            raise DeadlineExceeded(f"context deadline exceeded:{last_error}") from last_error
        mapped = lookup()
        if last_error is not None:
            logger.info("(%d) [%s] %s", attempt, mapped, last_error)
    return mapped


def _as_port(port: Port | str) -> Port:
    return port if isinstance(port, Port) else parse_port(port)


@dataclass
class HostPortStrategy(Strategy):
    """Waits for a port; with no port given, the first exposed one is used."""

    port: Port | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None

    def with_startup_timeout(self, startup_timeout: float) -> HostPortStrategy:
        self.timeout = startup_timeout
        return self

    def with_poll_interval(self, poll_interval: float) -> HostPortStrategy:
        self.poll_interval = poll_interval
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        timeout = DEFAULT_STARTUP_TIMEOUT if self.timeout is None else self.timeout
        ctx = ctx.with_timeout(timeout)

        host = target.host(ctx)

        internal_port = self.port
        if internal_port is None:
            internal_port = next(iter(target.ports(ctx)), None)
        if internal_port is None:
            raise ValueError("no port to wait for")

        mapped = _wait_for_mapped_port(ctx, target, internal_port, self.poll_interval)
        self._dial(ctx, host, mapped)

        command = build_internal_check_command(internal_port.number)
        while True:
            ctx.raise_if_expired()
            try:
                exit_code, _ = target.exec(ctx, ["/bin/sh", "-c", command])
            except Exception as exc:
                raise RuntimeError(f"{exc}, host port waiting failed") from exc
            if exit_code == 0:
                return
            if exit_code == 126:
                raise RuntimeError("/bin/sh command not executable")

    def _dial(self, ctx: WaitContext, host: str, port: Port) -> None:
        """Connect from the host side, retrying while the connection is refused."""
        address = (host or "localhost", port.number)
        while True:
            ctx.raise_if_expired()
            try:
                if port.proto == "udp":
                    family, kind, proto, _, sockaddr = socket.getaddrinfo(
                        *address, type=socket.SOCK_DGRAM
                    )[0]
                    with socket.socket(family, kind, proto) as sock:
                        sock.connect(sockaddr)
                else:
                    with socket.create_connection(address, timeout=ctx.remaining()):
                        pass
                return
            except ConnectionRefusedError:
                ctx.sleep(self.poll_interval)
            except TimeoutError as exc:
                if ctx.expired():
                    raise DeadlineExceeded() from exc
                raise


def for_listening_port(port: Port | str) -> HostPortStrategy:
    return HostPortStrategy(port=_as_port(port))


def for_exposed_port() -> HostPortStrategy:
    """Wait for the first port the container exposes."""
    return HostPortStrategy()
"""Core types shared by every wait strategy: deadlines, ports, container state."""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Mapping, Sequence

DEFAULT_STARTUP_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.1

_PORT_PATTERN = re.compile(r"(\d+)(?:/(\w+))?")


class DeadlineExceeded(TimeoutError):
    """Raised when a wait context runs past its deadline."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class WaitContext:
    """An optional deadline, measured on the monotonic clock."""

    deadline: float | None = None

    def with_timeout(self, timeout: float) -> WaitContext:
        """Return a context whose deadline is at most ``timeout`` seconds away."""
        candidate = time.monotonic() + timeout
        if self.deadline is not None and self.deadline <= candidate:
            return self
        return WaitContext(candidate)

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_expired(self) -> None:
        if self.expired():
            raise DeadlineExceeded()

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds``, raising DeadlineExceeded if the deadline comes first."""
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            time.sleep(remaining)
            raise DeadlineExceeded()
        time.sleep(seconds)


@dataclass(frozen=True)
class Port:
    """A container port with its protocol, written as ``80/tcp``."""

    number: int
    proto: str = "tcp"

    def __str__(self) -> str:
        return f"{self.number}/{self.proto}"


def parse_port(text: str) -> Port:
    """Parse ``"80/tcp"`` or ``"80"`` into a Port; the protocol defaults to tcp."""
    match = _PORT_PATTERN.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"invalid port {text!r}")
    number = int(match.group(1))
    if number > 65535:
        raise ValueError(f"port number out of range: {number}")
    return Port(number, (match.group(2) or "tcp").lower())


@dataclass
class ContainerState:
    """The runtime state of a container as reported by the engine."""

    status: str = ""
    running: bool = False
    paused: bool = False
    restarting: bool = False
    oom_killed: bool = False
    dead: bool = False
    pid: int = 0
    exit_code: int = 0
    error: str = ""
    health_status: str | None = None


class Strategy(ABC):
    """Something that blocks until a target is ready."""

    timeout: float | None = None

    @abstractmethod
    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        """Return once the target is ready; raise otherwise."""


class StrategyTarget(ABC):
    """The container a strategy waits on."""

    @abstractmethod
    def host(self, ctx: WaitContext) -> str:
        """Host name or address under which the container is reachable."""

    @abstractmethod
    def ports(self, ctx: WaitContext) -> Mapping[Port, Sequence[object]]:
        """Exposed ports mapped to their host bindings."""

    @abstractmethod
    def mapped_port(self, ctx: WaitContext, port: Port) -> Port | None:
        """Host port bound to the given container port, or None if not yet bound."""

    @abstractmethod
    def logs(self, ctx: WaitContext) -> IO[bytes]:
        """A readable binary stream of the container's logs."""

    @abstractmethod
    def exec(self, ctx: WaitContext, cmd: Sequence[str]) -> tuple[int, IO[bytes] | None]:
        """Run a command in the container; return its exit code and output."""

    @abstractmethod
    def state(self, ctx: WaitContext) -> ContainerState:
        """Current container state."""
"""A strategy that delegates to a callable, and a target that does nothing."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import IO, Callable, Sequence

from tcharness.strategy import (
    ContainerState,
    Port,
    Strategy,
    StrategyTarget,
    WaitContext,
    parse_port,
)

WaitFunction = Callable[[WaitContext, StrategyTarget], None]


@dataclass
class NopStrategy(Strategy):
    """Runs the given callable as its wait logic."""

    check: WaitFunction
    timeout: float | None = None

    def with_startup_timeout(self, timeout: float) -> NopStrategy:
        self.timeout = timeout
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        self.check(ctx, target)


def for_nop(wait_until_ready: WaitFunction) -> NopStrategy:
    return NopStrategy(check=wait_until_ready)


@dataclass
class NopStrategyTarget(StrategyTarget):
    """A target serving a fixed log stream and a fixed state."""

    reader: IO[bytes] = field(default_factory=io.BytesIO)
    container_state: ContainerState = field(default_factory=ContainerState)
    address: str = ""
    exposed_ports: dict[Port, list[object]] = field(default_factory=dict)
    exit_code: int = 0
    exec_output: bytes | None = None

    def host(self, ctx: WaitContext) -> str:
        return self.address

    def ports(self, ctx: WaitContext) -> dict[Port, list[object]]:
        return dict(self.exposed_ports)

    def mapped_port(self, ctx: WaitContext, port: Port | str) -> Port | None:
        return port if isinstance(port, Port) else parse_port(port)

    def logs(self, ctx: WaitContext) -> IO[bytes]:
        return self.reader

    def exec(self, ctx: WaitContext, cmd: Sequence[str]) -> tuple[int, IO[bytes] | None]:
        output = None if self.exec_output is None else io.BytesIO(self.exec_output)
        return self.exit_code, output

    def state(self, ctx: WaitContext) -> ContainerState:
        return self.container_state
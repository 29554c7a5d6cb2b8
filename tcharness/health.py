"""Wait until a container reports itself healthy."""

from __future__ import annotations

import time
from dataclasses import dataclass

from tcharness.strategy import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_STARTUP_TIMEOUT,
    Strategy,
    StrategyTarget,
    WaitContext,
)


@dataclass
class HealthStrategy(Strategy):
    """Polls the container state until its health status is ``healthy``."""

    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None

    def with_startup_timeout(self, startup_timeout: float) -> HealthStrategy:
        self.timeout = startup_timeout
        return self

    def with_poll_interval(self, poll_interval: float) -> HealthStrategy:
        self.poll_interval = poll_interval
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        timeout = DEFAULT_STARTUP_TIMEOUT if self.timeout is None else self.timeout
        ctx = ctx.with_timeout(timeout)
        while True:
            ctx.raise_if_expired()
            state = target.state(ctx)
            if state.health_status == "healthy":
                return
            time.sleep(self.poll_interval)


def for_health_check() -> HealthStrategy:
    return HealthStrategy()
"""Wait until a container has exited."""

from __future__ import annotations

import time
from dataclasses import dataclass

from tcharness.strategy import DEFAULT_POLL_INTERVAL, Strategy, StrategyTarget, WaitContext


@dataclass
class ExitStrategy(Strategy):
    """Polls the container state until it is no longer running; no timeout by default."""

    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None

    def with_exit_timeout(self, exit_timeout: float) -> ExitStrategy:
        self.timeout = exit_timeout
        return self

    def with_poll_interval(self, poll_interval: float) -> ExitStrategy:
        self.poll_interval = poll_interval
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        if self.timeout is not None:
            ctx = ctx.with_timeout(self.timeout)
        while True:
            ctx.raise_if_expired()
            try:
                state = target.state(ctx)
            except Exception as exc:
                if "No such container" in str(exc):
                    return
                raise
            if not state.running:
                return
            time.sleep(self.poll_interval)


def for_exit() -> ExitStrategy:
    return ExitStrategy()
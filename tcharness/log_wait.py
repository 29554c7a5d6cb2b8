"""Wait until a given text shows up in the container's logs."""

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
class LogStrategy(Strategy):
    """Polls the logs until ``log`` occurs at least ``occurrence`` times."""

    log: str
    occurrence: int = 1
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None

    def with_startup_timeout(self, timeout: float) -> LogStrategy:
        self.timeout = timeout
        return self

    def with_poll_interval(self, poll_interval: float) -> LogStrategy:
        self.poll_interval = poll_interval
        return self

    def with_occurrence(self, occurrence: int) -> LogStrategy:
        """Set the required count; values below one become one."""
        self.occurrence = occurrence if occurrence > 0 else 1
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        timeout = DEFAULT_STARTUP_TIMEOUT if self.timeout is None else self.timeout
        ctx = ctx.with_timeout(timeout)
        while True:
            ctx.raise_if_expired()
            try:
                reader = target.logs(ctx)
                try:
                    data = reader.read()
                finally:
                    reader.close()
            except Exception:
                time.sleep(self.poll_interval)
                continue
            if data.decode("utf-8", errors="replace").count(self.log) >= self.occurrence:
                return
            time.sleep(self.poll_interval)


def for_log(log: str) -> LogStrategy:
    return LogStrategy(log=log)
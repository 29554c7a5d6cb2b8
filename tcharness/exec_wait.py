"""Wait until a command run inside the container exits as expected."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from tcharness.strategy import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_STARTUP_TIMEOUT,
    Strategy,
    StrategyTarget,
    WaitContext,
)


def _exit_code_is_zero(exit_code: int) -> bool:
    return exit_code == 0


@dataclass
class ExecStrategy(Strategy):
    """Polls a command until its exit code satisfies the matcher."""

    cmd: list[str]
    exit_code_matcher: Callable[[int], bool] = field(default=_exit_code_is_zero)
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None

    def with_startup_timeout(self, startup_timeout: float) -> ExecStrategy:
        self.timeout = startup_timeout
        return self

    def with_exit_code_matcher(self, exit_code_matcher: Callable[[int], bool]) -> ExecStrategy:
        self.exit_code_matcher = exit_code_matcher
        return self

    def with_poll_interval(self, poll_interval: float) -> ExecStrategy:
        self.poll_interval = poll_interval
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        timeout = DEFAULT_STARTUP_TIMEOUT if self.timeout is None else self.timeout
        ctx = ctx.with_timeout(timeout)
        while True:
            ctx.sleep(self.poll_interval)
            exit_code, _ = target.exec(ctx, self.cmd)
            if self.exit_code_matcher(exit_code):
                return


def for_exec(cmd: list[str]) -> ExecStrategy:
    return ExecStrategy(cmd=list(cmd))
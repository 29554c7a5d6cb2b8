"""A strategy that runs several strategies one after another."""

from __future__ import annotations

from dataclasses import dataclass, field

from tcharness.strategy import Strategy, StrategyTarget, WaitContext

_MISSING = object()


@dataclass
class MultiStrategy(Strategy):
    """Waits on every inner strategy in order."""

    strategies: list[Strategy] = field(default_factory=list)
    timeout: float | None = None
    deadline: float | None = None

    def with_startup_timeout_default(self, timeout: float) -> MultiStrategy:
        """Set the timeout applied to inner strategies that have none of their own."""
        self.timeout = timeout
        return self

    def with_startup_timeout(self, timeout: float) -> MultiStrategy:
        """Deprecated alias for with_deadline."""
        return self.with_deadline(timeout)

    def with_deadline(self, deadline: float) -> MultiStrategy:
        """Limit the time all inner strategies may take together."""
        self.deadline = deadline
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        if self.deadline is not None:
            ctx = ctx.with_timeout(self.deadline)
        if not self.strategies:
            raise ValueError("no wait strategy supplied")
        for strategy in self.strategies:
            strategy_ctx = ctx
            if self.timeout is not None and getattr(strategy, "timeout", _MISSING) is None:
                strategy_ctx = ctx.with_timeout(self.timeout)
            strategy.wait_until_ready(strategy_ctx, target)


def for_all(*args: Strategy) -> MultiStrategy:
    return MultiStrategy(strategies=list(args))
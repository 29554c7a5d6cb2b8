from dataclasses import dataclass

import pytest

from tcharness.health import HealthStrategy, for_health_check
from tcharness.strategy import ContainerState, DeadlineExceeded, StrategyTarget, WaitContext


@dataclass
class _HealthTarget(StrategyTarget):
    unhealthy_polls: int = 0
    pending_status: str | None = "starting"
    error: Exception | None = None
    calls: int = 0

    def host(self, ctx):
        return ""

    def ports(self, ctx):
        return {}

    def mapped_port(self, ctx, port):
        return port

    def logs(self, ctx):
        raise RuntimeError("unused by this target")

    def exec(self, ctx, cmd):
        return 0, None

    def state(self, ctx):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.calls <= self.unhealthy_polls:
            return ContainerState(running=True, health_status=self.pending_status)
        return ContainerState(running=True, health_status="healthy")


def test_healthy_target_returns_after_one_poll():
    target = _HealthTarget()
    for_health_check().wait_until_ready(WaitContext(), target)
    assert target.calls == 1


def test_polls_until_healthy():
    target = _HealthTarget(unhealthy_polls=2)
    for_health_check().with_poll_interval(0.01).wait_until_ready(WaitContext(), target)
    assert target.calls == 3


def test_missing_health_status_is_not_healthy():
    target = _HealthTarget(unhealthy_polls=1, pending_status=None)
    for_health_check().with_poll_interval(0.01).wait_until_ready(WaitContext(), target)
    assert target.calls == 2


def test_times_out_when_never_healthy():
    target = _HealthTarget(unhealthy_polls=10**9)
    strategy = HealthStrategy().with_startup_timeout(0.1).with_poll_interval(0.01)
    with pytest.raises(DeadlineExceeded):
        strategy.wait_until_ready(WaitContext(), target)
    assert target.calls >= 2


def test_state_error_propagates():
    target = _HealthTarget(error=RuntimeError("daemon unreachable"))
    with pytest.raises(RuntimeError, match="daemon unreachable"):
        for_health_check().wait_until_ready(WaitContext(), target)


def test_builders_chain():
    strategy = for_health_check()
    assert strategy.with_startup_timeout(5) is strategy
    assert strategy.with_poll_interval(0.5) is strategy
    assert (strategy.timeout, strategy.poll_interval) == (5, 0.5)
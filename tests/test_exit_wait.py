from dataclasses import dataclass

import pytest

from tcharness.exit_wait import ExitStrategy, for_exit
from tcharness.strategy import ContainerState, DeadlineExceeded, StrategyTarget, WaitContext


@dataclass
class _ExitTarget(StrategyTarget):
    running_polls: int = 0
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
        return ContainerState(running=self.calls <= self.running_polls)


def test_wait_for_exit():
    target = _ExitTarget(running_polls=0)
    ExitStrategy().with_exit_timeout(0.1).wait_until_ready(WaitContext(), target)
    assert target.calls == 1


def test_polls_while_running():
    target = _ExitTarget(running_polls=2)
    strategy = for_exit().with_poll_interval(0.01)
    strategy.wait_until_ready(WaitContext(), target)
    assert target.calls == 3


def test_times_out_while_running():
    target = _ExitTarget(running_polls=10**9)
    strategy = for_exit().with_exit_timeout(0.1).with_poll_interval(0.01)
    with pytest.raises(DeadlineExceeded):
        strategy.wait_until_ready(WaitContext(), target)


def test_missing_container_counts_as_exited():
    target = _ExitTarget(error=RuntimeError("No such container: abc"))
    for_exit().wait_until_ready(WaitContext(), target)
    assert target.calls == 1


def test_other_state_errors_propagate():
    target = _ExitTarget(error=RuntimeError("daemon unreachable"))
    with pytest.raises(RuntimeError, match="daemon unreachable"):
        for_exit().wait_until_ready(WaitContext(), target)


def test_for_exit_defaults():
    strategy = for_exit()
    assert strategy.timeout is None
    assert strategy.poll_interval == 0.1
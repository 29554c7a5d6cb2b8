import time
from dataclasses import dataclass, field

import pytest

from tcharness.exec_wait import ExecStrategy, for_exec
from tcharness.strategy import DeadlineExceeded, StrategyTarget, WaitContext


@dataclass
class _ExecTarget(StrategyTarget):
    wait_duration: float = 0.0
    success_after: float | None = None
    exit_code: int = 0
    failure: Exception | None = None
    calls: int = 0
    commands: list = field(default_factory=list)

    def host(self, ctx):
        raise RuntimeError("unused by this target")

    def ports(self, ctx):
        raise RuntimeError("unused by this target")

    def mapped_port(self, ctx, port):
        raise RuntimeError("unused by this target")

    def logs(self, ctx):
        raise RuntimeError("unused by this target")

    def state(self, ctx):
        raise RuntimeError("unused by this target")

    def exec(self, ctx, cmd):
        self.calls += 1
        self.commands.append(list(cmd))
        time.sleep(self.wait_duration)
        ctx.raise_if_expired()
        if self.failure is not None:
            raise self.failure
        if self.success_after is not None and time.monotonic() > self.success_after:
            return 0, None
        return self.exit_code, None


def test_wait_until_ready():
    target = _ExecTarget()
    strategy = ExecStrategy(["true"]).with_startup_timeout(30)
    strategy.wait_until_ready(WaitContext(), target)
    assert target.calls == 1
    assert target.commands == [["true"]]


def test_wait_until_ready_for_exec():
    target = _ExecTarget()
    strategy = for_exec(["true"])
    strategy.wait_until_ready(WaitContext(), target)
    assert strategy.cmd == ["true"]
    assert target.calls == 1


def test_multiple_checks():
    target = _ExecTarget(exit_code=10, success_after=time.monotonic() + 0.5)
    strategy = ExecStrategy(["true"]).with_poll_interval(0.2)
    strategy.wait_until_ready(WaitContext(), target)
    assert target.calls >= 2


def test_deadline_exceeded():
    ctx = WaitContext().with_timeout(0.3)
    target = _ExecTarget(wait_duration=0.6)
    with pytest.raises(DeadlineExceeded):
        ExecStrategy(["true"]).wait_until_ready(ctx, target)


def test_custom_exit_code():
    target = _ExecTarget(exit_code=10)
    strategy = ExecStrategy(["true"]).with_exit_code_matcher(lambda code: code == 10)
    strategy.wait_until_ready(WaitContext(), target)
    assert target.calls == 1


def test_exec_error_propagates():
    target = _ExecTarget(failure=RuntimeError("boom"))
    with pytest.raises(RuntimeError, match="boom"):
        ExecStrategy(["true"]).wait_until_ready(WaitContext(), target)


def test_never_matching_exit_code_times_out():
    target = _ExecTarget(exit_code=10)
    strategy = ExecStrategy(["true"]).with_startup_timeout(0.3).with_poll_interval(0.05)
    with pytest.raises(DeadlineExceeded):
        strategy.wait_until_ready(WaitContext(), target)
    assert target.calls >= 2


def test_default_matcher_accepts_only_zero():
    strategy = for_exec(["true"])
    assert strategy.exit_code_matcher(0) is True
    assert strategy.exit_code_matcher(1) is False
    assert strategy.poll_interval == 0.1
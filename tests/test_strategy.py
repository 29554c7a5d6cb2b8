import time

import pytest

from tcharness.strategy import (
    DeadlineExceeded,
    Port,
    Strategy,
    StrategyTarget,
    WaitContext,
    parse_port,
)


def test_parse_port_with_protocol():
    assert parse_port("80/tcp") == Port(80, "tcp")


def test_parse_port_defaults_to_tcp():
    assert parse_port("8080").proto == "tcp"


@pytest.mark.parametrize("text", ["80/tcp", "8080/tcp", "6443/tcp", "5432/tcp"])
def test_port_round_trip(text):
    assert str(parse_port(text)) == text


@pytest.mark.parametrize("text", ["", "abc", "80/", "/tcp", "70000/tcp"])
def test_parse_port_rejects_invalid(text):
    with pytest.raises(ValueError):
        parse_port(text)


def test_background_context_has_no_deadline():
    ctx = WaitContext()
    assert ctx.remaining() is None
    assert ctx.expired() is False


def test_with_timeout_sets_deadline():
    ctx = WaitContext().with_timeout(5)
    remaining = ctx.remaining()
    assert ctx.deadline is not None
    assert 0 < remaining <= 5


def test_with_timeout_keeps_earlier_deadline():
    outer = WaitContext().with_timeout(1)
    assert outer.with_timeout(100).deadline == outer.deadline
    assert outer.with_timeout(0.5).deadline < outer.deadline


def test_zero_timeout_is_expired():
    ctx = WaitContext().with_timeout(0)
    assert ctx.expired()
    assert ctx.remaining() == 0
    with pytest.raises(DeadlineExceeded):
        ctx.raise_if_expired()


def test_sleep_raises_when_deadline_comes_first():
    ctx = WaitContext().with_timeout(0.05)
    start = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        ctx.sleep(5)
    assert time.monotonic() - start < 1


def test_sleep_within_deadline_returns():
    ctx = WaitContext().with_timeout(5)
    ctx.sleep(0.01)
    assert not ctx.expired()


def test_deadline_exceeded_message():
    error = DeadlineExceeded()
    assert isinstance(error, TimeoutError)
    assert str(error) == "context deadline exceeded"


def test_abstract_types_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Strategy()
    with pytest.raises(TypeError):
        StrategyTarget()
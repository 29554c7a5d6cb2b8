import io
import sqlite3

import pytest

from tcharness.sql_wait import SQLStrategy, for_sql
from tcharness.strategy import (
    ContainerState,
    DeadlineExceeded,
    Port,
    StrategyTarget,
    WaitContext,
)


class FakeTarget(StrategyTarget):
    def __init__(self, mapped):
        self.mapped = mapped

    def host(self, ctx):
        return "db.local"

    def ports(self, ctx):
        return {}

    def mapped_port(self, ctx, port):
        return self.mapped

    def logs(self, ctx):
        return io.BytesIO()

    def exec(self, ctx, cmd):
        return 0, None

    def state(self, ctx):
        return ContainerState()


def fake_url(host, port):
    return "fake-url"


def test_default_query():
    strategy = for_sql("5432/tcp", sqlite3.connect, fake_url)
    assert strategy.query == "SELECT 1"


def test_custom_query():
    query = "SELECT 100;"
    strategy = for_sql("5432/tcp", sqlite3.connect, fake_url).with_query(query)
    assert strategy.query == query


def test_port_is_parsed():
    assert for_sql("5432/tcp", sqlite3.connect, fake_url).port == Port(5432, "tcp")


def test_fluent_setters_return_same_strategy():
    strategy = for_sql(Port(5432), sqlite3.connect, fake_url)
    assert strategy.with_poll_interval(0.5) is strategy
    assert strategy.with_startup_timeout(3) is strategy
    assert (strategy.poll_interval, strategy.timeout) == (0.5, 3)


def test_waits_until_query_succeeds():
    seen = []

    def url(host, port):
        seen.append((host, port))
        return ":memory:"

    strategy = for_sql("5432/tcp", sqlite3.connect, url).with_poll_interval(0.01)
    strategy.wait_until_ready(WaitContext(), FakeTarget(Port(49153)))
    assert seen == [("db.local", Port(49153))]


def test_retries_after_connection_failures():
    calls = []

    def connect(url):
        calls.append(url)
        if len(calls) < 3:
            raise sqlite3.OperationalError("not ready")
        return sqlite3.connect(":memory:")

    strategy = SQLStrategy(
        port=Port(5432),
        connect=connect,
        url=lambda host, port: f"{host}:{port.number}",
        poll_interval=0.01,
    )
    result = strategy.wait_until_ready(WaitContext(), FakeTarget(Port(49160)))
    assert result is None
    assert calls == ["db.local:49160"] * 3
    assert strategy.port == Port(5432)


def test_failing_query_times_out():
    strategy = (
        for_sql("5432/tcp", sqlite3.connect, lambda host, port: ":memory:")
        .with_query("SELEC nonsense")
        .with_startup_timeout(0.3)
        .with_poll_interval(0.05)
    )
    with pytest.raises(DeadlineExceeded):
        strategy.wait_until_ready(WaitContext(), FakeTarget(Port(5432)))


def test_unmapped_port_times_out():
    strategy = (
        for_sql("5432/tcp", sqlite3.connect, lambda host, port: ":memory:")
        .with_startup_timeout(0.2)
        .with_poll_interval(0.05)
    )
    with pytest.raises(DeadlineExceeded):
        strategy.wait_until_ready(WaitContext(), FakeTarget(None))
"""Wait until a database in the container answers a query."""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass
from typing import Any, Callable

from tcharness.host_port import _as_port, _wait_for_mapped_port
from tcharness.strategy import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_STARTUP_TIMEOUT,
    Port,
    Strategy,
    StrategyTarget,
    WaitContext,
)

DEFAULT_QUERY = "SELECT 1"


@dataclass
class SQLStrategy(Strategy):
    """Repeatedly connects and runs ``query`` until it succeeds.

    ``connect`` takes the URL built by ``url`` and returns a DB-API connection.
    """

    port: Port
    connect: Callable[[str], Any]
    url: Callable[[str, Port], str]
    poll_interval: float = DEFAULT_POLL_INTERVAL
    query: str = DEFAULT_QUERY
    timeout: float | None = None

    def with_startup_timeout(self, timeout: float) -> SQLStrategy:
        self.timeout = timeout
        return self

    def with_poll_interval(self, poll_interval: float) -> SQLStrategy:
        self.poll_interval = poll_interval
        return self

    def with_query(self, query: str) -> SQLStrategy:
        self.query = query
        return self

    def wait_until_ready(self, ctx: WaitContext, target: StrategyTarget) -> None:
        timeout = DEFAULT_STARTUP_TIMEOUT if self.timeout is None else self.timeout
        ctx = ctx.with_timeout(timeout)

        host = target.host(ctx)
        port = _wait_for_mapped_port(ctx, target, self.port, self.poll_interval)
        url = self.url(host, port)

        while True:
            ctx.sleep(self.poll_interval)
            try:
                self._run_query(url)
            except Exception:  # the database may still be starting up
                continue
            return

    def _run_query(self, url: str) -> None:
        with closing(self.connect(url)) as connection:
            cursor = connection.cursor()
            try:
                cursor.execute(self.query)
            finally:
                cursor.close()


def for_sql(
    port: Port | str, connect: Callable[[str], Any], url: Callable[[str, Port], str]
) -> SQLStrategy:
    return SQLStrategy(port=_as_port(port), connect=connect, url=url)
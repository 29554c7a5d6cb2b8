# tcharness

Building blocks for integration tests that run against containers:

- **Wait strategies** that block until a container is ready: log text
  (`tcharness.log_wait.for_log`), command exit codes
  (`tcharness.exec_wait.for_exec`), container exit
  (`tcharness.exit_wait.for_exit`), health status
  (`tcharness.health.for_health_check`), listening ports
  (`tcharness.host_port.for_listening_port`, `for_exposed_port`), HTTP
  endpoints (`tcharness.http_wait.for_http`), SQL queries
  (`tcharness.sql_wait.for_sql`), and sequences of them
  (`tcharness.multi.for_all`).
- **Mount descriptions** for bind, volume and tmpfs mounts
  (`tcharness.mounts`).
- **Network request** parameters (`tcharness.network.NetworkRequest`).
- **Parallel creation** of many containers on a worker pool
  (`tcharness.parallel.parallel_containers`).
- **Reaper client** that registers a session's label filter with a cleanup
  sidecar (`tcharness.reaper.Reaper`).
- **Local compose** control through the `docker-compose` executable
  (`tcharness.compose_local.LocalDockerCompose`).

## Installation

```
pip install tcharness
```

## Wait strategies

A strategy waits on a *target*: any object implementing
`tcharness.strategy.StrategyTarget` (`host`, `ports`, `mapped_port`, `logs`,
`exec`, `state`). Every wait runs under a `WaitContext`, which carries an
optional deadline; when it passes, `DeadlineExceeded` (a `TimeoutError`) is
raised. Other failures are raised as ordinary exceptions.

```python
from tcharness.strategy import WaitContext
from tcharness.log_wait import for_log
from tcharness.multi import for_all
from tcharness.http_wait import for_http

strategy = for_all(
    for_log("ready to accept connections").with_occurrence(2),
    for_http("/health").with_port("8080/tcp").with_startup_timeout(30),
).with_deadline(60)

strategy.wait_until_ready(WaitContext(), container)
```

Durations are in seconds. Unless changed, strategies poll every 0.1 seconds
and give up after 60 seconds; `ExitStrategy` has no timeout by default.
`MultiStrategy.with_startup_timeout_default` gives a timeout to inner
strategies that have none of their own; `with_deadline` limits them all
together.

Ports are written as `"80/tcp"` or parsed with `tcharness.strategy.parse_port`.

`for_sql(port, connect, url)` takes a `connect` callable returning a DB-API
connection and a `url(host, port)` callable building the address it is given;
`with_query` replaces the default `SELECT 1`.

For tests, `tcharness.nop.NopStrategyTarget` is a target with fixed logs,
state and exec result, and `tcharness.nop.for_nop` turns any callable into a
strategy.

## Mounts

```python
from tcharness.mounts import bind_mount, volume_mount, mounts

container_mounts = mounts(
    bind_mount("/var/lib/app/data", "/data"),
    volume_mount("app-cache", "/cache"),
)
```

Each `ContainerMount` holds a source (`GenericBindMountSource`,
`GenericVolumeMountSource` or `GenericTmpfsMountSource`, each with `source`
and `type`), a `target` path and a `read_only` flag.

## Parallel containers

```python
from tcharness.parallel import (
    ParallelContainersError,
    ParallelContainersOptions,
    parallel_containers,
)

try:
    started = parallel_containers(requests, create_container, ParallelContainersOptions(workers_count=4))
except ParallelContainersError as exc:
    started = exc.containers
    for failure in exc.errors:
        print(failure.request, failure.error)
```

`create_container` is any callable that takes one request and returns a
container or raises. Without a worker count, eight workers are used. Results
come in completion order.

## Reaper

```python
from tcharness.reaper import Reaper

reaper = Reaper(session_id="session-1", endpoint="localhost:8080")
with reaper.connect():
    ...  # resources labelled with reaper.labels() are reaped after the session
```

`connect` sends the label filter built from `labels()` and keeps the
connection open until `terminate()` is called or the `with` block ends.
`reaper_image("")` gives the default reaper image name.

## Local compose

```python
from tcharness.compose_local import ExecError, LocalDockerCompose
from tcharness.http_wait import for_http

compose = LocalDockerCompose(
    ["docker-compose.yml"],
    "my_project",
    container_finder=find_containers,
)
try:
    result = (
        compose.with_command(["up", "-d"])
        .with_env({"FOO": "foo"})
        .wait_for_service("nginx", for_http("/").with_port("80/tcp"))
        .invoke()
    )
    print(result.stdout)
except ExecError as exc:
    print("failed:", exc.command, exc)
finally:
    compose.down()
```

`docker-compose` (`docker-compose.exe` on Windows, or the `executable`
argument) must be on the `PATH`. The project name and the compose files are
passed through `COMPOSE_PROJECT_NAME` and `COMPOSE_FILE`. Output is echoed to
the terminal and returned in a `subprocess.CompletedProcess`; a failed start or
a non-zero exit raises `ExecError`. On creation the executable's version is
read (`compose_version`, whose `format` joins name parts with `_` or `-`) and
the compose files' services are collected into `services`.

Wait strategies registered with `wait_for_service` or `with_exposed_service`
run once, after the next successful command. `container_finder` receives the
candidate container names for a service and must return the matching
`StrategyTarget` objects.

## What this package does not do

It does not talk to a container engine itself. It does not create, start or
inspect containers or networks, does not launch the reaper container, and does
not load compose projects through an API. Containers, targets, the `create`
callable for `parallel_containers` and the `container_finder` for
`LocalDockerCompose` are supplied by the caller; `NetworkRequest` only
describes a network.
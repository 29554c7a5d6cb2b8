"""Create many containers at once on a bounded pool of workers."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

DEFAULT_WORKERS_COUNT = 8

RequestT = TypeVar("RequestT")
ContainerT = TypeVar("ContainerT")


@dataclass
class ParallelContainersOptions:
    """Zero workers means the default of eight."""

    workers_count: int = 0


@dataclass
class ParallelContainersRequestError:
    """A request that failed, with the reason."""

    request: object
    error: BaseException


class ParallelContainersError(Exception):
    """Raised when one or more requests failed; carries the containers that did start."""

    def __init__(self, errors: list[ParallelContainersRequestError], containers: list[object]) -> None:
        super().__init__(str(errors))
        self.errors = errors
        self.containers = containers


def parallel_containers(
    requests: Sequence[RequestT],
    create: Callable[[RequestT], ContainerT],
    options: ParallelContainersOptions | None = None,
) -> list[ContainerT]:
    """Run ``create`` for every request in parallel and return the containers.

    Results come in completion order. If any request fails, ParallelContainersError
    is raised holding every failure and the containers that were created.
    """
    options = options or ParallelContainersOptions()
    workers = min(options.workers_count or DEFAULT_WORKERS_COUNT, len(requests))
    if workers <= 0:
        return []

    containers: list[ContainerT] = []
    errors: list[ParallelContainersRequestError] = []
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(create, request): request for request in requests}
        for future in as_completed(futures):
            try:
                containers.append(future.result())
            except Exception as exc:
                errors.append(ParallelContainersRequestError(request=futures[future], error=exc))

    if errors:
        raise ParallelContainersError(errors, list(containers))
    return containers
"""Drive a locally installed docker-compose binary for a set of compose files."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Callable, Mapping, Sequence, TextIO

import yaml

from tcharness.strategy import Strategy, StrategyTarget, WaitContext

ENV_PROJECT_NAME = "COMPOSE_PROJECT_NAME"
ENV_COMPOSE_FILE = "COMPOSE_FILE"

ContainerFinder = Callable[[Sequence[str]], Sequence[StrategyTarget]]

_CHUNK_SIZE = 65536


class ComposeVersion(Enum):
    """Major compose versions; each joins container name parts its own way."""

    V1 = "_"
    V2 = "-"

    def format(self, *args: str) -> str:
        return self.value.join(args)


class ExecError(Exception):
    """A compose run that could not be started or did not finish cleanly."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] = (),
        stdout_output: bytes = b"",
        stderr_output: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.command = list(command)
        self.stdout_output = stdout_output
        self.stderr_output = stderr_output


def _pump(stream: IO[bytes], sink: TextIO, captured: bytearray) -> None:
    """Copy a child's output into ``captured`` while passing it through to ``sink``."""
    binary_sink = getattr(sink, "buffer", None)
    while chunk := stream.read1(_CHUNK_SIZE):
        captured.extend(chunk)
        if binary_sink is not None:
            binary_sink.write(chunk)
            binary_sink.flush()
        else:
            sink.write(chunk.decode("utf-8", errors="replace"))
            sink.flush()
    stream.close()


def execute(
    dir_context: str, environment: Mapping[str, str], binary: str, args: Sequence[str]
) -> subprocess.CompletedProcess[bytes]:
    """Run ``binary`` with ``args`` in ``dir_context``, echoing and capturing its output.

    The environment is the current one extended by ``environment``. Raises ExecError
    if the program cannot be started or exits with a non-zero status.
    """
    env = {**os.environ, **environment}
    try:
        process = subprocess.Popen(
            [binary, *args],
            cwd=dir_context,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        raise ExecError(
            str(exc), command=["Starting command", dir_context, binary, *args]
        ) from exc

    stdout = bytearray()
    stderr = bytearray()
    assert process.stdout is not None and process.stderr is not None
    reader = threading.Thread(target=_pump, args=(process.stdout, sys.stdout, stdout), daemon=True)
    reader.start()
    _pump(process.stderr, sys.stderr, stderr)
    reader.join()
    returncode = process.wait()

    command = ["Reading std", dir_context, binary, *args]
    if returncode != 0:
        raise ExecError(
            f"exit status {returncode}",
            command=command,
            stdout_output=bytes(stdout),
            stderr_output=bytes(stderr),
        )
    return subprocess.CompletedProcess(command, returncode, bytes(stdout), bytes(stderr))


@dataclass(frozen=True)
class _WaitService:
    service: str
    published_port: int = 0


class LocalDockerCompose:
    """A compose project run through the local docker-compose executable.

    ``container_finder`` receives candidate container names for a service and returns
    the matching containers; it is needed only when wait strategies are registered.
    """

    def __init__(
        self,
        file_paths: Sequence[str],
        identifier: str,
        *,
        executable: str | None = None,
        logger: logging.Logger | None = None,
        container_finder: ContainerFinder | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        if executable is None:
            executable = "docker-compose.exe" if os.name == "nt" else "docker-compose"
        self.executable = executable
        self.compose_file_paths = list(file_paths)
        self._abs_paths = [os.path.abspath(path) for path in self.compose_file_paths]
        self.identifier = ""
        self.cmd: list[str] = []
        self.env: dict[str, str] = {}
        self.services: dict[str, object] = {}
        self.compose_version: ComposeVersion | None = None
        self.container_finder = container_finder
        self.wait_strategies: dict[_WaitService, Strategy] = {}
        self._wait_strategy_supplied = False

        try:
            self.determine_version()
        except Exception as exc:
            self.logger.debug("could not determine compose version: %s", exc)
        try:
            self.validate()
        except Exception as exc:
            self.logger.debug("could not validate compose files: %s", exc)

        self.identifier = identifier.lower()

    def down(self) -> subprocess.CompletedProcess[bytes]:
        """Run ``down`` removing orphans and volumes."""
        return self._execute_compose(["down", "--remove-orphans", "--volumes"])

    def invoke(self) -> subprocess.CompletedProcess[bytes]:
        """Run the configured command."""
        return self._execute_compose(self.cmd)

    def wait_for_service(self, service: str, strategy: Strategy) -> LocalDockerCompose:
        self._wait_strategy_supplied = True
        self.wait_strategies[_WaitService(service)] = strategy
        return self

    def with_command(self, cmd: Sequence[str]) -> LocalDockerCompose:
        self.cmd = list(cmd)
        return self

    def with_env(self, env: Mapping[str, str]) -> LocalDockerCompose:
        self.env = dict(env)
        return self

    def with_exposed_service(self, service: str, port: int, strategy: Strategy) -> LocalDockerCompose:
        """Wait on a service; several ports of one service all apply to the same container."""
        self._wait_strategy_supplied = True
        self.wait_strategies[_WaitService(service, port)] = strategy
        return self

    def compose_environment(self) -> dict[str, str]:
        """Variables that tell compose the project name and its files."""
        return {
            ENV_PROJECT_NAME: self.identifier,
            ENV_COMPOSE_FILE: "".join(path + os.pathsep for path in self._abs_paths),
        }

    def determine_version(self) -> None:
        """Ask the executable for its version and pick the matching name format."""
        result = self._execute_compose(["version", "--short"])
        components = result.stdout.split(b".")
        if len(components) != 3:
            raise ValueError(f"expected 3 version components in {result.stdout.decode(errors='replace')}")
        major = int(components[0].decode())
        if major == 1:
            self.compose_version = ComposeVersion.V1
        elif major == 2:
            self.compose_version = ComposeVersion.V2
        else:
            raise ValueError(f"unexpected compose version {major}")

    def validate(self) -> None:
        """Parse every compose file as YAML and collect the services they define."""
        for path in self._abs_paths:
            document = yaml.safe_load(Path(path).read_text()) or {}
            self.services.update(document.get("services") or {})

    def _container_name(self, service: str, separator: str) -> str:
        return self.identifier + separator + service

    def _execute_compose(self, args: Sequence[str]) -> subprocess.CompletedProcess[bytes]:
        if shutil.which(self.executable) is None:
            raise ExecError(
                f"Local Docker Compose not found. Is {self.executable} on the PATH?",
                command=[self.executable],
            )

        environment = self.compose_environment()
        environment.update(self.env)

        if self._abs_paths:
            cwd = os.path.dirname(self._abs_paths[0]) + os.sep
            cmds = [flag for path in self._abs_paths for flag in ("-f", path)]
        else:
            cwd = "."
            cmds = ["-f", "docker-compose.yml"]
        cmds.extend(args)

        try:
            result = execute(cwd, environment, self.executable, cmds)
        except ExecError as exc:
            raise ExecError(
                f"Local Docker compose exited abnormally whilst running {self.executable}: "
                f"[{' '.join(self.cmd)}]. {exc}",
                command=[self.executable],
            ) from exc

        if self._wait_strategy_supplied:
            # run the strategies once, not again while tearing down
            self._wait_strategy_supplied = False
            try:
                self._apply_strategies()
            except Exception as exc:
                raise ExecError(
                    "one or more wait strategies could not be applied to the running containers: "
                    f"{exc}"
                ) from exc
        return result

    def _apply_strategies(self) -> None:
        if self.container_finder is None:
            raise RuntimeError("no container finder configured to look up service containers")
        for key, strategy in self.wait_strategies.items():
            names = [
                self._container_name(key.service, "_"),
                self._container_name(key.service, "-"),
                key.service,
            ]
            try:
                containers = list(self.container_finder(names))
            except Exception as exc:
                raise RuntimeError(
                    f"error {exc} occured while filtering the service {key.service}: "
                    f"{key.published_port} by name and published port"
                ) from exc
            if not containers:
                raise RuntimeError(
                    f"service with name {key.service} not found in list of running containers"
                )
            if len(containers) > 1:
                raise RuntimeError(
                    f"expecting only one running container for {key.service} but got {len(containers)}"
                )
            self.logger.debug("applying wait strategy to service %s", key.service)
            try:
                strategy.wait_until_ready(WaitContext(), containers[0])
            except Exception as exc:
                raise RuntimeError(
                    f"Unable to apply wait strategy {strategy!r} to service {key.service} due to {exc}"
                ) from exc
"""Client for the sidecar that removes labelled resources when a session ends."""

from __future__ import annotations

import socket
import threading
from dataclasses import dataclass
from typing import Any

TESTCONTAINER_LABEL = "org.testcontainers.python"
TESTCONTAINER_LABEL_SESSION_ID = TESTCONTAINER_LABEL + ".sessionId"
TESTCONTAINER_LABEL_IS_REAPER = TESTCONTAINER_LABEL + ".reaper"

REAPER_DEFAULT_IMAGE = "docker.io/testcontainers/ryuk:0.3.4"

CONNECT_TIMEOUT = 10.0
_RETRY_LIMIT = 3


def reaper_image(reaper_image_name: str) -> str:
    """The given image name, or the default image when it is empty."""
    return reaper_image_name or REAPER_DEFAULT_IMAGE


def _split_endpoint(endpoint: str) -> tuple[str, int]:
    host, sep, port = endpoint.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid endpoint {endpoint!r}")
    return host.strip("[]"), int(port)


class ReaperConnection:
    """An open session with the reaper; resources are reaped once it is terminated."""

    def __init__(self, sock: socket.socket, filters: str) -> None:
        self._sock = sock
        self._payload = (filters + "\n").encode()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        reader = self._sock.makefile("rb")
        try:
            for _ in range(_RETRY_LIMIT):
                try:
                    self._sock.sendall(self._payload)
                    response = reader.readline()
                except OSError:
                    continue
                if response == b"ACK\n":
                    break
            self._stop.wait()
        finally:
            reader.close()
            self._sock.close()

    def terminate(self) -> None:
        """Close the session and wait for the connection to shut down."""
        self._stop.set()
        self._thread.join()

    def __enter__(self) -> ReaperConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.terminate()


@dataclass
class Reaper:
    """A running reaper, reachable at ``endpoint`` (``host:port``)."""

    provider: Any = None
    session_id: str = ""
    endpoint: str = ""
    container: Any = None

    def labels(self) -> dict[str, str]:
        """Labels that mark a resource for removal by this reaper."""
        return {
            TESTCONTAINER_LABEL: "true",
            TESTCONTAINER_LABEL_SESSION_ID: self.session_id,
        }

    def connect(self) -> ReaperConnection:
        """Register this session's label filter with the reaper."""
        host, port = _split_endpoint(self.endpoint)
        try:
            sock = socket.create_connection((host, port), timeout=CONNECT_TIMEOUT)
        except OSError as exc:
            raise ConnectionError(f"{exc}: Connecting to Ryuk on {self.endpoint} failed") from exc
        filters = "&".join(f"label={key}={value}" for key, value in self.labels().items())
        return ReaperConnection(sock, filters)
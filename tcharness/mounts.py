"""Mount descriptions: what gets mounted into a container, and where."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol, Union


class MountType(IntEnum):
    """Kinds of mounts the container engine supports."""

    BIND = 0
    VOLUME = 1
    TMPFS = 2
    PIPE = 3


class ContainerMountSource(Protocol):
    """Anything that can be mounted: it has a source string and a mount type."""

    @property
    def source(self) -> str: ...

    @property
    def type(self) -> MountType: ...


@dataclass(frozen=True)
class GenericBindMountSource:
    """A host path mounted into the container."""

    host_path: str

    @property
    def source(self) -> str:
        return self.host_path

    @property
    def type(self) -> MountType:
        return MountType.BIND


@dataclass(frozen=True)
class GenericVolumeMountSource:
    """A named volume mounted into the container."""

    name: str

    @property
    def source(self) -> str:
        return self.name

    @property
    def type(self) -> MountType:
        return MountType.VOLUME


@dataclass(frozen=True)
class GenericTmpfsMountSource:
    """An in-memory filesystem; it has no source."""

    @property
    def source(self) -> str:
        return ""

    @property
    def type(self) -> MountType:
        return MountType.TMPFS


MountSource = Union[GenericBindMountSource, GenericVolumeMountSource, GenericTmpfsMountSource]


@dataclass(frozen=True)
class ContainerMount:
    """A mount source placed at a target path inside the container.

    Targets must be unique within one container.
    """

    source: ContainerMountSource
    target: str
    read_only: bool = False


def bind_mount(host_path: str, target: str) -> ContainerMount:
    """Mount a host path at ``target``."""
    return ContainerMount(source=GenericBindMountSource(host_path=host_path), target=target)


def volume_mount(volume_name: str, target: str) -> ContainerMount:
    """Mount a named volume at ``target``."""
    return ContainerMount(source=GenericVolumeMountSource(name=volume_name), target=target)


def mounts(*args: ContainerMount) -> list[ContainerMount]:
    """Collect mounts into a list."""
    return list(args)
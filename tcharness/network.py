"""Parameters describing a container network."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class NetworkRequest:
    """What to create or look up when asking for a network."""

    driver: str = ""
    check_duplicate: bool = False
    internal: bool = False
    enable_ipv6: bool = False
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    attachable: bool = False
    ipam: Any = None
    skip_reaper: bool = False
    reaper_image: str = ""  # deprecated: pass an image option in reaper_options
    reaper_options: list[Any] = field(default_factory=list)
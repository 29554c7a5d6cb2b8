"""Wait strategies, mount descriptions, reaper client and local compose control for container-backed tests."""

__version__ = "0.1.0"
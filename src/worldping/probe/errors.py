"""Exceptions raised while probing a world server."""

from __future__ import annotations


class WorldpingError(Exception):
    """Base class for all checker errors."""


class ProbeError(WorldpingError):
    """A per-target failure. Never fatal to the rest of a run."""

    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(f"{host}:{port}: {reason}")


class ConnectTimeout(ProbeError):
    def __init__(self, host: str, port: int, timeout: float):
        self.timeout = timeout
        super().__init__(host, port, f"connect timed out after {timeout:g}s")


class ConnectFailure(ProbeError):
    pass


class IOFailure(ProbeError):
    pass

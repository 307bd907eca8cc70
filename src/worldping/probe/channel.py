"""Probe channel: one TCP connection to one world server.

Wire protocol:
- client sends the single opaque byte 0x0E
- server answers with 9 bytes once its current tick is processed
- repeat; no handshake or framing beyond the fixed lengths

The first exchange after connecting only aligns the client with the server's
tick cadence and its timing is thrown away by every algorithm.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from worldping.probe.errors import ConnectFailure, ConnectTimeout, IOFailure
from worldping.utils.logging_config import get_logger

logger = get_logger(__name__, component="channel")

PROBE = bytes([14])
RESPONSE_SIZE = 9


class Channel(ABC):
    """Anything that can time a probe/response exchange."""

    host: str = ""
    port: int = 0

    @abstractmethod
    async def exchange_once(self) -> float:
        """Send one probe and return the round trip in milliseconds."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

    async def align(self) -> None:
        """Tick alignment: one exchange whose timing is discarded."""
        await self.exchange_once()

    async def __aenter__(self) -> "Channel":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class ProbeChannel(Channel):
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        host: str,
        port: int,
        read_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.host = host
        self.port = port
        self.read_timeout = read_timeout
        self._reader = reader
        self._writer = writer
        self._clock = clock
        self._dead = False
        self._closed = False

    @classmethod
    async def open(
        cls,
        host: str,
        port: int,
        connect_timeout: float = 10.0,
        read_timeout: Optional[float] = None,
    ) -> "ProbeChannel":
        """Connect within `connect_timeout` seconds.

        wait_for cancels the pending connect on timeout, so nothing outlives
        the deadline.
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=connect_timeout
            )
        except asyncio.TimeoutError as e:
            raise ConnectTimeout(host, port, connect_timeout) from e
        except (OSError, UnicodeError) as e:
            # UnicodeError: the host name fails IDNA encoding during resolution
            raise ConnectFailure(host, port, str(e) or type(e).__name__) from e
        logger.debug("channel_open", host=host, port=port)
        return cls(reader, writer, host, port, read_timeout=read_timeout)

    @property
    def alive(self) -> bool:
        return not (self._dead or self._closed)

    async def exchange_once(self) -> float:
        if not self.alive:
            raise IOFailure(self.host, self.port, "channel is closed")
        start = self._clock()
        try:
            self._writer.write(PROBE)
            await self._writer.drain()
            await asyncio.wait_for(
                self._reader.readexactly(RESPONSE_SIZE), timeout=self.read_timeout
            )
        except asyncio.IncompleteReadError as e:
            self._dead = True
            raise IOFailure(
                self.host,
                self.port,
                f"connection closed after {len(e.partial)} of {RESPONSE_SIZE} bytes",
            ) from e
        except asyncio.TimeoutError as e:
            self._dead = True
            raise IOFailure(
                self.host, self.port, f"no response within {self.read_timeout:g}s"
            ) from e
        except OSError as e:
            self._dead = True
            raise IOFailure(self.host, self.port, str(e) or type(e).__name__) from e
        return (self._clock() - start) * 1000.0

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError:
            # peer already reset the connection
            pass
        logger.debug("channel_closed", host=self.host, port=self.port)

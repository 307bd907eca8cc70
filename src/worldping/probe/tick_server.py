"""Local stand-in for a tick-driven world server.

Answers every probe byte with a 9-byte reply at the next boundary of a fixed
tick, which is how the real service behaves from the client's point of view.
With `silent=True` it accepts connections and reads probes but never answers.
"""

from __future__ import annotations

import asyncio
import math
from typing import Optional, Set

from worldping.probe.channel import RESPONSE_SIZE
from worldping.utils.logging_config import get_logger

logger = get_logger(__name__, component="tick_server")

DEFAULT_TICK_MS = 600.0
REPLY = bytes(RESPONSE_SIZE)


class TickServer:
    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 0,
        tick_ms: float = DEFAULT_TICK_MS,
        silent: bool = False,
    ):
        self.host = host
        self.port = port
        self.tick_ms = tick_ms
        self.silent = silent
        self.connections = 0
        self.probes = 0
        self._server: Optional[asyncio.AbstractServer] = None
        self._epoch = 0.0
        self._writers: Set[asyncio.StreamWriter] = set()

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._epoch = loop.time()
        self._server = await asyncio.start_server(self._handle_client, self.host, self.port)
        # resolve the real port when bound to 0
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info("tick_server_started", host=self.host, port=self.port, tick_ms=self.tick_ms)

    def next_boundary_delay(self, now: float) -> float:
        """Seconds from `now` until the next tick boundary."""
        tick = self.tick_ms / 1000.0
        ticks = math.floor((now - self._epoch) / tick) + 1
        return max(0.0, self._epoch + ticks * tick - now)

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.add(writer)
        loop = asyncio.get_running_loop()
        try:
            while True:
                data = await reader.read(1)
                if not data:
                    break
                self.probes += 1
                if self.silent:
                    continue
                await asyncio.sleep(self.next_boundary_delay(loop.time()))
                writer.write(REPLY)
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            self._writers.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            for writer in list(self._writers):
                writer.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("tick_server_stopped", port=self.port)

    async def __aenter__(self) -> "TickServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

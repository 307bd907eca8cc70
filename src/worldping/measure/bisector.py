"""Adaptive tick boundary search.

The round trip to a tick-driven server depends on where inside the current
tick the probe lands: just before a boundary it is short, just after it the
probe waits almost a full tick. Before every probe we sleep for an artificial
delay and bisect that delay on [0, ceiling], so successive probes sweep the
tick window and min/max bracket the real latency envelope.

This is a heuristic. It converges in practice but nothing guarantees the
search finds the exact boundary, and the result depends on the trial count.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from worldping.measure.outcome import Envelope
from worldping.probe.channel import Channel
from worldping.utils.logging_config import get_logger

logger = get_logger(__name__, component="bisector")

DEFAULT_CEILING_MS = 600


@dataclass
class BisectionState:
    """Per-target search state; 0 <= low <= high <= ceiling at all times."""

    low: int = 0
    high: int = DEFAULT_CEILING_MS
    min: float = math.inf
    max: int = 0
    samples: int = 0

    @property
    def mid(self) -> int:
        return (self.low + self.high) // 2

    def fold(self, delay: int, elapsed: int, ceiling: int) -> None:
        """Move one bracket end to `delay` and fold `elapsed` into min/max."""
        if elapsed < ceiling:
            self.low = delay
        else:
            self.high = delay
        self.min = min(self.min, elapsed)
        self.max = max(self.max, elapsed)
        self.samples += 1


async def _sleep_ms(delay_ms: int) -> None:
    await asyncio.sleep(delay_ms / 1000.0)


class BoundaryBisector:
    def __init__(
        self,
        ceiling_ms: int = DEFAULT_CEILING_MS,
        sleep: Callable[[int], Awaitable[None]] = _sleep_ms,
    ):
        if ceiling_ms <= 0:
            raise ValueError(f"ceiling_ms must be positive, got {ceiling_ms}")
        self.ceiling_ms = ceiling_ms
        self._sleep = sleep

    def new_state(self) -> BisectionState:
        return BisectionState(low=0, high=self.ceiling_ms)

    async def run(
        self,
        channel: Channel,
        trials: int,
        progress: Optional[Callable[[str], None]] = None,
    ) -> Envelope:
        """Run exactly `trials` probes; a single slow sample never stops the run."""
        if trials < 1:
            raise ValueError(f"trials must be positive, got {trials}")

        await channel.align()
        state = self.new_state()
        for i in range(1, trials + 1):
            delay = state.mid
            await self._sleep(delay)
            # truncated to whole milliseconds
            elapsed = int(await channel.exchange_once())
            state.fold(delay, elapsed, self.ceiling_ms)
            logger.debug(
                "bisect_trial",
                host=channel.host,
                trial=i,
                delay_ms=delay,
                elapsed_ms=elapsed,
                low=state.low,
                high=state.high,
            )
            if progress:
                progress(
                    f"World {channel.host}, Trial {i} of {trials}: "
                    f"time={elapsed}ms min={state.min}ms max={state.max}ms"
                )

        if progress:
            progress(
                f"Summary for world {channel.host}: min={state.min}ms "
                f"max={state.max}ms range={state.max - state.min}ms\n"
            )
        return Envelope(state.min, state.max, state.samples)

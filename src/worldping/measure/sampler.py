"""Tick length sampling.

Probes are sent back to back with no artificial delay. Each reply only comes
back once the server finished its current tick, so the spacing between
successive reply timestamps approximates the tick length. Intervals are taken
between absolute timestamps on one clock started right after alignment, not
from the round trip of each exchange.
"""

from __future__ import annotations

import math
import time
from typing import Callable, Optional

from worldping.measure.outcome import Envelope
from worldping.probe.channel import Channel
from worldping.utils.logging_config import get_logger

logger = get_logger(__name__, component="sampler")

DEFAULT_ANOMALY_THRESHOLD_MS = 900.0


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


class TickSampler:
    def __init__(
        self,
        anomaly_threshold_ms: float = DEFAULT_ANOMALY_THRESHOLD_MS,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.anomaly_threshold_ms = anomaly_threshold_ms
        self._clock = clock

    async def run(
        self,
        channel: Channel,
        trials: int,
        progress: Optional[Callable[[str], None]] = None,
    ) -> Envelope:
        """Sample up to `trials` intervals.

        An interval above the anomaly threshold is treated as a local stall:
        sampling stops and the envelope built so far is returned. IOFailure
        from the channel propagates to the caller.
        """
        if trials < 1:
            raise ValueError(f"trials must be positive, got {trials}")

        await channel.align()
        lo, hi = math.inf, 0.0
        count = 0
        last = 0.0
        start = self._clock()
        for i in range(1, trials + 1):
            await channel.exchange_once()
            elapsed = self._clock() - start
            interval = elapsed - last
            if interval > self.anomaly_threshold_ms:
                logger.warning(
                    "anomalous_sample",
                    host=channel.host,
                    trial=i,
                    interval_ms=round(interval, 3),
                    kept=count,
                )
                if progress:
                    progress(f"Trial {i} of {trials}: Bad result; aborted")
                break
            lo = min(lo, interval)
            hi = max(hi, interval)
            count += 1
            last = elapsed
            logger.debug("tick_sample", host=channel.host, trial=i, interval_ms=interval)
            if progress:
                progress(f"Trial {i} of {trials}: time={interval:.4f}ms avg={elapsed / i:.3f}")

        if count == 0:
            lo = hi = 0.0
        if progress:
            progress(f"Summary: min={lo:.4f}ms max={hi:.4f}ms range={hi - lo:.4f}ms\n")
        return Envelope(lo, hi, count)

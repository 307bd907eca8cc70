"""Concurrent fan-out of measurements across many worlds.

Every target runs as its own asyncio task with its own channel and its own
algorithm state, so targets never share anything mutable. Connect and I/O
failures are caught at the per-target boundary and turned into sentinel
outcomes; the gather only resolves once the slowest target is done.

A target that never completes its connect fails after CONNECT_TIMEOUT. A
target that connects but then stops answering fails after its connect time
plus READ_TIMEOUT, since each response read has its own deadline. The worst
case for a single stalled target is therefore CONNECT_TIMEOUT + READ_TIMEOUT.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional

from worldping.config.settings import Settings, settings as default_settings
from worldping.config.worlds import Target
from worldping.measure.bisector import BoundaryBisector
from worldping.measure.outcome import MeasurementOutcome
from worldping.measure.sampler import TickSampler
from worldping.probe.channel import Channel, ProbeChannel
from worldping.probe.errors import ProbeError
from worldping.utils.logging_config import get_logger

logger = get_logger(__name__, component="coordinator")

# (host, port, connect_timeout, read_timeout) -> open channel
Connector = Callable[[str, int, float, Optional[float]], Awaitable[Channel]]

BISECT = "bisect"
TICKS = "ticks"
ALGORITHMS = (BISECT, TICKS)


class FanOutCoordinator:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        port: Optional[int] = None,
        algorithm: str = BISECT,
        connector: Optional[Connector] = None,
    ):
        if algorithm not in ALGORITHMS:
            raise ValueError(f"Unknown algorithm: {algorithm}")
        self.settings = settings or default_settings
        self.port = port if port is not None else self.settings.port_for(secure=False)
        self.algorithm = algorithm
        self.connector: Connector = connector or ProbeChannel.open
        self.bisector = BoundaryBisector(ceiling_ms=self.settings.BISECT_CEILING_MS)
        self.sampler = TickSampler(anomaly_threshold_ms=self.settings.ANOMALY_THRESHOLD_MS)

    async def measure(
        self,
        target: Target,
        trials: int,
        progress: Optional[Callable[[str], None]] = None,
    ) -> MeasurementOutcome:
        """Measure one target; never raises for network trouble."""
        host = target.hostname(self.settings.DOMAIN_SUFFIX)
        runner = self.bisector if self.algorithm == BISECT else self.sampler
        try:
            channel = await self.connector(
                host, self.port, self.settings.CONNECT_TIMEOUT, self.settings.READ_TIMEOUT
            )
            async with channel:
                envelope = await runner.run(channel, trials, progress=progress)
        except (ProbeError, OSError, UnicodeError, asyncio.TimeoutError) as e:
            logger.warning(
                "measurement_failed",
                host=host,
                world=target.identifier,
                error=str(e),
                kind=type(e).__name__,
            )
            return MeasurementOutcome.failure(target.identifier, target.label, error=str(e))

        logger.info(
            "measurement_done",
            host=host,
            world=target.identifier,
            min_ms=envelope.min,
            max_ms=envelope.max,
            samples=envelope.samples,
        )
        return MeasurementOutcome(
            target=target.identifier,
            label=target.label,
            min=envelope.min,
            max=envelope.max,
            samples=envelope.samples,
        )

    async def run(self, targets: Iterable[Target], trials: int) -> List[MeasurementOutcome]:
        """Measure all targets concurrently, one outcome per target."""
        targets = list(targets)
        logger.info(
            "fanout_start",
            targets=len(targets),
            trials=trials,
            port=self.port,
            algorithm=self.algorithm,
        )
        outcomes = await asyncio.gather(*(self.measure(t, trials) for t in targets))
        failed = sum(1 for o in outcomes if o.failed)
        logger.info("fanout_done", targets=len(outcomes), failed=failed)
        return list(outcomes)

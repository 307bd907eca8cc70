"""Tests for the concurrent fan-out coordinator."""

import sys
import time
from pathlib import Path

# Ensure src is importable
ROOT = Path(__file__).parent.parent
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

import pytest

from worldping.config.settings import Settings  # noqa: E402
from worldping.config.worlds import Target  # noqa: E402
from worldping.measure.bisector import BoundaryBisector  # noqa: E402
from worldping.measure.coordinator import BISECT, TICKS, FanOutCoordinator  # noqa: E402
from worldping.measure.outcome import MeasurementOutcome  # noqa: E402
from worldping.measure.sampler import TickSampler  # noqa: E402
from fakes import FakeConnector  # noqa: E402


async def no_sleep(delay_ms):
    return None


def fast_settings(**overrides):
    values = dict(DOMAIN_SUFFIX="", CONNECT_TIMEOUT=0.2, READ_TIMEOUT=0.2)
    values.update(overrides)
    return Settings(**values)


def make_coordinator(connector, algorithm=BISECT, **overrides):
    coordinator = FanOutCoordinator(fast_settings(**overrides), algorithm=algorithm, connector=connector)
    coordinator.bisector = BoundaryBisector(
        ceiling_ms=coordinator.settings.BISECT_CEILING_MS, sleep=no_sleep
    )
    return coordinator


class TestMeasure:
    @pytest.mark.asyncio
    async def test_single_world_scenario(self):
        connector = FakeConnector(scripts={"world5": [120, 95, 140]})
        coordinator = make_coordinator(connector)

        outcome = await coordinator.measure(Target("5", "UK"), 3)

        assert outcome == MeasurementOutcome(target="5", label="UK", min=95, max=140, samples=3)
        assert not outcome.failed
        assert outcome.range == 45

    @pytest.mark.asyncio
    async def test_connects_to_resolved_host_and_port(self):
        seen = []

        async def connector(host, port, connect_timeout, read_timeout):
            seen.append((host, port, connect_timeout, read_timeout))
            return await FakeConnector(scripts={host: [10]})(host, port)

        coordinator = FanOutCoordinator(
            fast_settings(DOMAIN_SUFFIX=".example.com"), port=443, connector=connector
        )
        coordinator.bisector = BoundaryBisector(sleep=no_sleep)
        outcome = await coordinator.measure(Target("12", "DE"), 1)

        assert seen == [("world12.example.com", 443, 0.2, 0.2)]
        assert outcome.min == 10

    @pytest.mark.asyncio
    async def test_refused_world_is_sentinel(self):
        coordinator = make_coordinator(FakeConnector())
        outcome = await coordinator.measure(Target("9", "AU"), 3)
        assert outcome.failed
        assert (outcome.min, outcome.max) == (-1, -1)
        assert outcome.label == "AU"
        assert "refused" in outcome.error

    @pytest.mark.asyncio
    async def test_resolution_encoding_error_is_sentinel(self):
        async def connector(host, port, connect_timeout, read_timeout):
            raise UnicodeError("label empty or too long")

        coordinator = make_coordinator(connector)
        outcomes = await coordinator.run([Target("bad..host", "x"), Target("y" * 70, "y")], 3)

        assert [o.label for o in outcomes] == ["x", "y"]
        assert all(o.failed for o in outcomes)
        assert "label empty" in outcomes[0].error

    @pytest.mark.asyncio
    async def test_connect_never_completes(self):
        coordinator = make_coordinator(FakeConnector(hang={"world3"}))
        started = time.perf_counter()
        outcome = await coordinator.measure(Target("3"), 5)
        assert time.perf_counter() - started < 1.0
        assert (outcome.min, outcome.max) == (-1, -1)
        assert "timed out" in outcome.error

    @pytest.mark.asyncio
    async def test_mid_run_failure_is_sentinel_and_closes_channel(self):
        connector = FakeConnector(scripts={"world4": [100, 110]})
        coordinator = make_coordinator(connector)

        outcome = await coordinator.measure(Target("4"), 5)

        assert outcome.failed
        assert len(connector.opened) == 1
        assert connector.opened[0].closed

    @pytest.mark.asyncio
    async def test_channel_closed_after_success(self):
        connector = FakeConnector(scripts={"world5": [1, 2]})
        await make_coordinator(connector).measure(Target("5"), 2)
        assert connector.opened[0].closed

    @pytest.mark.asyncio
    async def test_tick_algorithm(self):
        connector = FakeConnector(scripts={"world2": [0, 0, 0]})
        coordinator = make_coordinator(connector, algorithm=TICKS)
        readings = iter([0, 600, 1200, 1800])
        coordinator.sampler = TickSampler(clock=lambda: next(readings))

        outcome = await coordinator.measure(Target("2", "US"), 3)

        assert (outcome.min, outcome.max, outcome.samples) == (600, 600, 3)

    def test_unknown_algorithm_rejected(self):
        with pytest.raises(ValueError):
            FanOutCoordinator(fast_settings(), algorithm="traceroute")

    def test_default_port_is_plain(self):
        coordinator = FanOutCoordinator(fast_settings())
        assert coordinator.port == 43594


class TestFanOut:
    @pytest.mark.asyncio
    async def test_failures_are_isolated(self):
        connector = FakeConnector(
            scripts={"world1": [50, 60, 70], "world2": [120, 95, 140]},
            hang={"world3"},
            silent={"world4"},
        )
        coordinator = make_coordinator(connector)
        targets = [
            Target("1", "US"),
            Target("2", "UK"),
            Target("3", "DE"),
            Target("4", "NL"),
            Target("5", "AU"),
        ]

        started = time.perf_counter()
        outcomes = await coordinator.run(targets, 3)
        elapsed = time.perf_counter() - started

        # the hung and silent worlds each burn one 0.2s timeout, concurrently
        assert elapsed < 1.0
        assert len(outcomes) == len(targets)
        by_world = {o.target: o for o in outcomes}
        assert (by_world["1"].min, by_world["1"].max) == (50, 70)
        assert (by_world["2"].min, by_world["2"].max) == (95, 140)
        for world in ("3", "4", "5"):
            assert by_world[world].failed
        assert all(ch.closed for ch in connector.opened)

    @pytest.mark.asyncio
    async def test_one_outcome_per_target_with_duplicates(self):
        connector = FakeConnector(scripts={"world7": [10, 20]})
        coordinator = make_coordinator(connector)
        outcomes = await coordinator.run([Target("7", "a"), Target("7", "b")], 2)
        assert [o.label for o in outcomes] == ["a", "b"]
        assert len(connector.opened) == 2

    @pytest.mark.asyncio
    async def test_targets_run_concurrently(self):
        scripts = {f"world{i}": [100, 100] for i in range(1, 11)}
        connector = FakeConnector(scripts=scripts, realtime=True)
        coordinator = make_coordinator(connector)

        started = time.perf_counter()
        outcomes = await coordinator.run([Target(str(i)) for i in range(1, 11)], 2)
        elapsed = time.perf_counter() - started

        # ten worlds of 2 x 100 ms each; sequential would take 2 s
        assert elapsed < 1.0
        assert all(o.samples == 2 for o in outcomes)

    @pytest.mark.asyncio
    async def test_repeat_runs_are_identical(self):
        connector = FakeConnector(scripts={"world1": [300, 20, 650], "world2": [90, 91, 92]})
        coordinator = make_coordinator(connector)
        targets = [Target("1"), Target("2")]
        assert await coordinator.run(targets, 3) == await coordinator.run(targets, 3)

    @pytest.mark.asyncio
    async def test_empty_target_list(self):
        assert await make_coordinator(FakeConnector()).run([], 3) == []

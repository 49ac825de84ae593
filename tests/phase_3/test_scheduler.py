from __future__ import annotations

import asyncio

import pytest

from graphview.layout.scheduler import SimulationLoop, run_until_settled


class CountingTarget:
    """Tick target that settles after a fixed number of ticks."""

    def __init__(self, remaining: int) -> None:
        self.remaining = remaining
        self.performed = 0

    def needs_ticks(self) -> bool:
        return self.remaining > 0

    def advance(self, ticks: int) -> int:
        done = min(ticks, self.remaining)
        self.remaining -= done
        self.performed += done
        return done


class StuckTarget:
    def needs_ticks(self) -> bool:
        return True

    def advance(self, ticks: int) -> int:
        return 0


def test_loop_ticks_until_target_settles() -> None:
    async def scenario() -> int:
        loop = SimulationLoop(frame_interval=0.0, ticks_per_frame=2)
        loop.start(CountingTarget(5))
        assert loop.running
        return await loop.wait()

    assert asyncio.run(scenario()) == 5


def test_restarting_cancels_previous_target() -> None:
    stale = CountingTarget(10_000)
    fresh = CountingTarget(3)

    async def scenario() -> int:
        loop = SimulationLoop(frame_interval=0.0)
        first = loop.start(stale)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        loop.start(fresh)
        ticks = await loop.wait()
        assert first.cancelled()
        assert loop.generation == 2
        return ticks

    assert asyncio.run(scenario()) == 3
    assert fresh.remaining == 0
    assert stale.remaining > 0


def test_stop_unwinds_running_loop() -> None:
    target = CountingTarget(10_000)

    async def scenario() -> None:
        loop = SimulationLoop(frame_interval=0.0)
        loop.start(target)
        await asyncio.sleep(0)
        await loop.stop()
        assert not loop.running
        assert await loop.wait() == 0

    asyncio.run(scenario())
    assert target.remaining > 0


def test_settled_target_issues_no_ticks() -> None:
    async def scenario() -> int:
        loop = SimulationLoop(frame_interval=0.0)
        loop.start(CountingTarget(0))
        return await loop.wait()

    assert asyncio.run(scenario()) == 0


def test_start_requires_running_event_loop() -> None:
    with pytest.raises(RuntimeError):
        SimulationLoop().start(CountingTarget(1))


def test_invalid_loop_settings_are_rejected() -> None:
    with pytest.raises(ValueError):
        SimulationLoop(frame_interval=-1.0)
    with pytest.raises(ValueError):
        SimulationLoop(ticks_per_frame=0)


def test_run_until_settled_respects_budget() -> None:
    assert run_until_settled(CountingTarget(120), ticks_per_call=50) == 120
    capped = CountingTarget(120)
    assert run_until_settled(capped, max_ticks=70, ticks_per_call=50) == 70
    assert capped.remaining == 50
    assert run_until_settled(CountingTarget(0)) == 0
    assert run_until_settled(StuckTarget()) == 0

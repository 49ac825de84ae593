"""Cooperative tick loop driving a simulation on the asyncio event loop."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from typing_extensions import Protocol

LOGGER = logging.getLogger(__name__)


class TickTarget(Protocol):
    """Object owning a simulation state that can be advanced by whole ticks."""

    def needs_ticks(self) -> bool:
        """Return whether the target has not settled yet."""

    def advance(self, ticks: int) -> int:
        """Advance up to ``ticks`` ticks and return how many were performed."""


class SimulationLoop:
    """Issue ticks to one target per frame, yielding between frames.

    Starting the loop again cancels the previous run first, so ticks for a
    stale target are never issued after a newer target was started.
    """

    def __init__(self, *, frame_interval: float = 1.0 / 60.0, ticks_per_frame: int = 1) -> None:
        if frame_interval < 0:
            raise ValueError("frame_interval must be non-negative")
        if ticks_per_frame < 1:
            raise ValueError("ticks_per_frame must be at least 1")
        self._frame_interval = frame_interval
        self._ticks_per_frame = ticks_per_frame
        self._task: Optional[asyncio.Task[int]] = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def generation(self) -> int:
        return self._generation

    def start(self, target: TickTarget) -> "asyncio.Task[int]":
        """Cancel any current run and start ticking ``target``.

        Must be called from a running event loop.
        """

        self.cancel()
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(self._run(target, self._generation))
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            LOGGER.debug("Cancelled simulation loop generation %d", self._generation)
        self._task = None

    async def stop(self) -> None:
        """Cancel the current run and wait for it to unwind."""

        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def wait(self) -> int:
        """Wait for the current run to settle and return the ticks it issued."""

        if self._task is None:
            return 0
        return await self._task

    async def _run(self, target: TickTarget, generation: int) -> int:
        issued = 0
        try:
            while generation == self._generation and target.needs_ticks():
                issued += target.advance(self._ticks_per_frame)
                await asyncio.sleep(self._frame_interval)
        except Exception:
            LOGGER.exception("Simulation loop generation %d failed", generation)
            raise
        LOGGER.debug("Simulation loop generation %d finished after %d ticks", generation, issued)
        return issued


def run_until_settled(target: TickTarget, *, max_ticks: int = 10_000, ticks_per_call: int = 50) -> int:
    """Drive ``target`` synchronously until it settles; return the ticks performed."""

    issued = 0
    while issued < max_ticks and target.needs_ticks():
        performed = target.advance(min(ticks_per_call, max_ticks - issued))
        if performed == 0:
            break
        issued += performed
    return issued

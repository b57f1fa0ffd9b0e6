"""Drives the simulation once per animation tick, decoupled from rendering."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from .simulation import Simulation
from .store import Generation

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Generation], Awaitable[None]]


class FrameScheduler:
    """
    Steps a :class:`Simulation` on a fixed cadence from an asyncio task.

    Each tick measures the wall-clock time elapsed since the previous tick
    and passes it to the simulation as ``delta_time`` in seconds. The very
    first tick has no predecessor and steps with 0.0. When a lock is given,
    every step runs while holding it so other coroutines can swap the force
    table or rebuild the simulation between steps.
    """

    def __init__(
        self,
        simulation: Simulation,
        on_frame: Optional[FrameCallback] = None,
        frame_interval: Optional[float] = None,
        max_delta_time: Optional[float] = None,
        lock: Optional[asyncio.Lock] = None,
        clock: Callable[[], float] = time.perf_counter,
        log_every: int = 600,
    ):
        self.simulation = simulation
        self.on_frame = on_frame
        self._frame_interval = frame_interval
        self._max_delta_time = max_delta_time
        self.lock = lock
        self.clock = clock
        self.log_every = log_every

        self.frames = 0
        self._last_timestamp: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def frame_interval(self) -> float:
        """Explicit override, else the current simulation's config (re-read every frame)."""
        if self._frame_interval is not None:
            return self._frame_interval
        return self.simulation.config.frame_interval

    @property
    def max_delta_time(self) -> Optional[float]:
        if self._max_delta_time is not None:
            return self._max_delta_time
        return self.simulation.config.max_delta_time

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._cancelled

    def elapsed(self, timestamp: float) -> float:
        """Seconds since the previous tick, clamped to ``max_delta_time``."""
        if self._last_timestamp is None:
            delta = 0.0
        else:
            delta = max(0.0, timestamp - self._last_timestamp)
        self._last_timestamp = timestamp
        if self.max_delta_time is not None:
            delta = min(delta, self.max_delta_time)
        return delta

    def tick(self, timestamp: Optional[float] = None) -> float:
        """Run one step for a tick observed at ``timestamp`` (seconds); returns the delta used."""
        if timestamp is None:
            timestamp = self.clock()
        delta = self.elapsed(timestamp)
        self.simulation.step(delta)
        self.frames += 1

        if self.log_every and self.frames % self.log_every == 0:
            logger.info(
                "Frame %d, t=%.2f, avg speed %.3f",
                self.frames, self.simulation.t, self.simulation.average_speed(),
            )
        return delta

    async def run(self) -> None:
        """Tick until cancelled."""
        logger.info("Frame scheduler started (interval %.4fs)", self.frame_interval)
        try:
            while not self._cancelled:
                if self.lock is not None:
                    async with self.lock:
                        self.tick()
                        generation = self.simulation.current()
                else:
                    self.tick()
                    generation = self.simulation.current()

                if self.on_frame is not None:
                    await self.on_frame(generation)

                await asyncio.sleep(self.frame_interval)
        finally:
            logger.info("Frame scheduler stopped after %d frames", self.frames)

    def start(self) -> asyncio.Task:
        """Schedule :meth:`run` on the running event loop."""
        if self.running:
            raise RuntimeError("Frame scheduler is already running")
        self._cancelled = False
        self._last_timestamp = None
        self._task = asyncio.create_task(self.run())
        return self._task

    def cancel(self) -> None:
        """Halt further steps; an in-progress step is allowed to finish."""
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()

    async def stop(self) -> None:
        """Cancel and wait for the task to finish."""
        self.cancel()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

from __future__ import annotations

"""
File: pathsim/session.py
Purpose: Host loop that drives a SimulationEngine from per-frame callbacks.
Key responsibilities:
- Run one engine tick per frame while playing, with dt taken from the loop clock.
- Stop at terminal state; cancel pending frames on reset or reload.
- Publish each committed snapshot to WebSocket clients.
Key entrypoints:
- SimulationSession.load(), play(), pause(), reset()
"""

import asyncio
import logging

from pathsim.sim.engine import SimulationEngine, SimulationSnapshot
from pathsim.ws import WSManager

logger = logging.getLogger("path-sim.session")


class SimulationSession:
    """Single active simulation plus the asyncio task ticking it."""
    def __init__(self, ws_manager: WSManager, tick_hz: int) -> None:
        if tick_hz <= 0:
            raise ValueError(f"tick_hz must be > 0, got {tick_hz}")
        self.ws_manager = ws_manager
        self.frame_s = 1.0 / tick_hz
        self.engine: SimulationEngine | None = None
        self._task: asyncio.Task | None = None

    def require_engine(self) -> SimulationEngine:
        if self.engine is None:
            raise LookupError("no simulation loaded")
        return self.engine

    async def load(self, engine: SimulationEngine) -> SimulationSnapshot:
        """Replace the active simulation, dropping any running loop."""
        await self._cancel()
        self.engine = engine
        logger.info(
            "simulation loaded robots=%d tasks=%d",
            len(engine.robot_order),
            engine.metrics.total_tasks,
        )
        return await self.publish()

    async def play(self) -> SimulationSnapshot:
        engine = self.require_engine()
        if engine.is_terminal():
            engine.reset()
        engine.play()
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(engine, engine.generation))
        return await self.publish()

    async def pause(self) -> SimulationSnapshot:
        self.require_engine().pause()
        return await self.publish()

    async def reset(self) -> SimulationSnapshot:
        engine = self.require_engine()
        engine.reset()
        await self._cancel()
        return await self.publish()

    async def publish(self) -> SimulationSnapshot:
        snapshot = self.require_engine().snapshot()
        await self.ws_manager.broadcast(snapshot.as_dict())
        return snapshot

    async def _cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, engine: SimulationEngine, generation: int) -> None:
        """Tick once per frame until paused, reset, or every robot is done."""
        loop = asyncio.get_running_loop()
        last = loop.time()
        try:
            while engine.playing and engine.generation == generation:
                await asyncio.sleep(self.frame_s)
                if not engine.playing or engine.generation != generation:
                    break
                now = loop.time()
                terminal = engine.tick(now - last)
                last = now
                if terminal:
                    engine.pause()
                    metrics = engine.metrics
                    logger.info(
                        "simulation finished sim_time=%.1fs distance=%.2fm tasks=%d/%d",
                        metrics.elapsed_time,
                        metrics.total_distance,
                        metrics.completed_tasks,
                        metrics.total_tasks,
                    )
                await self.ws_manager.broadcast(engine.snapshot().as_dict())
        except Exception as exc:  # noqa: BLE001
            logger.exception("simulation loop error: %s", exc)
            engine.pause()

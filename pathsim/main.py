from __future__ import annotations

"""
File: pathsim/main.py
Purpose: FastAPI service exposing the path simulation to a renderer/dashboard.
Key responsibilities:
- Load a simulation from an inline payload or from a backend solve.
- Expose play/pause/reset and runtime controls.
- Stream one snapshot per tick over /ws.
Key entrypoints:
- /api/simulation*, /ws
Config/env vars:
- BACKEND_API_URL, BACKEND_API_TOKEN, SIM_TICK_HZ, SIM_* , BATTERY_CAPACITY, MAX_DISTANCE
- SNAP_* safety-valve thresholds, LOG_LEVEL
"""

import logging
from typing import Any

import httpx
from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from pathsim.backend_client import load_solve_inputs
from pathsim.schemas import ControlsUpdate, SimulationLoadRequest, SolveResult
from pathsim.session import SimulationSession
from pathsim.settings import settings
from pathsim.sim.engine import SimulationEngine
from pathsim.ws import WSManager

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s path-sim %(message)s")
logger = logging.getLogger("path-sim")

app = FastAPI(title="path-sim", version="1.0.0")
ws_manager = WSManager()
session = SimulationSession(ws_manager, tick_hz=settings.sim_tick_hz)


def _no_simulation() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "no simulation loaded"})


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness/readiness endpoint."""
    return {"status": "ok"}


@app.post("/api/simulation")
async def load_simulation(req: SimulationLoadRequest) -> dict[str, Any]:
    """Load a simulation from an inline environment + solve result."""
    result = SolveResult.from_payload(req.results)
    engine = SimulationEngine.from_inputs(req.environment, result, req.parameters, settings)
    snapshot = await session.load(engine)
    return snapshot.as_dict()


@app.post("/api/simulation/solves/{solve_id}")
async def load_simulation_from_solve(solve_id: int) -> JSONResponse:
    """Fetch a completed solve from the backend and load it."""
    try:
        environment, result, parameters = await load_solve_inputs(
            settings.backend_api_url,
            solve_id,
            token=settings.backend_api_token,
        )
    except httpx.HTTPError as exc:
        logger.exception("backend fetch failed solve_id=%s: %s", solve_id, exc)
        return JSONResponse(status_code=502, content={"error": f"backend error: {exc}"})
    except ValueError as exc:
        logger.warning("solve_id=%s cannot be simulated: %s", solve_id, exc)
        return JSONResponse(status_code=409, content={"error": str(exc)})
    engine = SimulationEngine.from_inputs(environment, result, parameters, settings)
    snapshot = await session.load(engine)
    return JSONResponse(content=snapshot.as_dict())


@app.get("/api/simulation/snapshot")
async def get_snapshot() -> JSONResponse:
    if session.engine is None:
        return _no_simulation()
    return JSONResponse(content=session.engine.snapshot().as_dict())


@app.post("/api/simulation/play")
async def play() -> JSONResponse:
    if session.engine is None:
        return _no_simulation()
    snapshot = await session.play()
    return JSONResponse(content=snapshot.as_dict())


@app.post("/api/simulation/pause")
async def pause() -> JSONResponse:
    if session.engine is None:
        return _no_simulation()
    snapshot = await session.pause()
    return JSONResponse(content=snapshot.as_dict())


@app.post("/api/simulation/reset")
async def reset() -> JSONResponse:
    if session.engine is None:
        return _no_simulation()
    snapshot = await session.reset()
    return JSONResponse(content=snapshot.as_dict())


@app.put("/api/simulation/controls")
async def update_controls(req: ControlsUpdate) -> JSONResponse:
    """Apply control changes; they take effect from the next tick."""
    if req.debug is not None:
        logging.getLogger("path-sim").setLevel(logging.DEBUG if req.debug else settings.log_level)
    if session.engine is None:
        return _no_simulation()
    engine = session.engine
    try:
        if req.speed_multiplier is not None:
            engine.set_speed_multiplier(req.speed_multiplier)
        if req.max_speed is not None:
            engine.set_max_speed(req.max_speed)
        if req.acceleration is not None:
            engine.set_acceleration(req.acceleration)
    except ValueError as exc:
        logger.warning("rejected controls update %s: %s", req.model_dump(exclude_none=True), exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})
    snapshot = await session.publish()
    return JSONResponse(content=snapshot.as_dict())


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for streaming snapshot.tick events."""
    await ws_manager.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except Exception:  # noqa: BLE001
        await ws_manager.disconnect(websocket)

from __future__ import annotations

"""
File: pathsim/schemas.py
Purpose: Pydantic models for the environment, solve result and control contracts.
Key responsibilities:
- Validate environment layouts and solver results loaded from the backend.
- Split the per-robot task lists from the solver "stats" block.
- Define the request bodies of the simulation API.
Key entrypoints:
- Environment, SolveResult, ScenarioParameters, SimulationLoadRequest, ControlsUpdate
"""

import logging
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("path-sim.schemas")

Point = tuple[float, float]


class Dimensions(BaseModel):
    width: float
    height: float


class Shelf(BaseModel):
    id: str
    position: Point
    size: Point


class Pickup(BaseModel):
    id: str
    position: Point
    shelf_id: Optional[str] = None
    side: Optional[Literal["left", "right", "top", "bottom"]] = None


class Dropoff(BaseModel):
    id: str
    position: Point


class NavigationPoint(BaseModel):
    id: str
    position: Point
    shelf_id: Optional[str] = None


class RobotStation(BaseModel):
    id: str
    position: Point
    robot_count: Optional[int] = None


class Robot(BaseModel):
    """Robot declaration: a fixed start position and/or a home station."""
    id: str
    station_id: Optional[str] = None
    position: Optional[Point] = None


class EnvironmentElements(BaseModel):
    shelves: list[Shelf] = Field(default_factory=list)
    pickups: list[Pickup] = Field(default_factory=list)
    dropoffs: list[Dropoff] = Field(default_factory=list)
    robot_stations: list[RobotStation] = Field(default_factory=list)
    robots: list[Robot] = Field(default_factory=list)
    navigation_points: list[NavigationPoint] = Field(default_factory=list)


class Environment(BaseModel):
    """Warehouse layout as stored by the backend."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    dimensions: Dimensions
    elements: EnvironmentElements = Field(default_factory=EnvironmentElements)


class ScenarioParameters(BaseModel):
    """Scenario-level battery parameters; other scenario keys are ignored."""
    model_config = ConfigDict(extra="ignore")

    battery_capacity: float = Field(default=100.0, ge=0)
    max_distance: float = 1000.0


class SolveTask(BaseModel):
    """One entry of a robot's task list in a solve result."""
    model_config = ConfigDict(extra="ignore")

    task: Union[list[str], str, None] = None
    path: Optional[list[str]] = None
    total_distance: Optional[float] = None
    battery_remaining: Optional[float] = None
    completion_time: Optional[float] = None
    recharge_time: Optional[float] = None
    battery_capacity: Optional[float] = None
    max_distance: Optional[float] = None


class SolveStats(BaseModel):
    model_config = ConfigDict(extra="allow")

    completion_time: Optional[float] = None
    total_distance: Optional[float] = None
    collisions: Optional[int] = None


class SolveResult(BaseModel):
    """Solver output: ordered tasks per robot plus optional aggregate stats."""
    robots: dict[str, list[SolveTask]] = Field(default_factory=dict)
    stats: Optional[SolveStats] = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SolveResult:
        """Parse the backend shape where robot ids and "stats" share one mapping."""
        robots: dict[str, list[SolveTask]] = {}
        for key, value in payload.items():
            if key == "stats":
                continue
            if not isinstance(value, list):
                logger.warning("robot %s has no task list in solve result, ignoring entry", key)
                robots[str(key)] = []
                continue
            tasks: list[SolveTask] = []
            for item in value:
                if not isinstance(item, dict):
                    logger.warning("robot %s has malformed task entry %r", key, item)
                    tasks.append(SolveTask())
                    continue
                try:
                    tasks.append(SolveTask.model_validate(item))
                except ValidationError as exc:
                    logger.warning("robot %s has invalid task entry %r: %s", key, item, exc)
                    tasks.append(SolveTask())
            robots[str(key)] = tasks
        stats: SolveStats | None = None
        raw_stats = payload.get("stats")
        if isinstance(raw_stats, dict):
            try:
                stats = SolveStats.model_validate(raw_stats)
            except ValidationError as exc:
                logger.warning("ignoring invalid solve stats %r: %s", raw_stats, exc)
        return cls(robots=robots, stats=stats)


class SimulationLoadRequest(BaseModel):
    """Request body for POST /api/simulation."""
    environment: Environment
    results: dict[str, Any]
    parameters: ScenarioParameters = Field(default_factory=ScenarioParameters)


class ControlsUpdate(BaseModel):
    """Request body for PUT /api/simulation/controls."""
    speed_multiplier: Optional[float] = None
    max_speed: Optional[float] = None
    acceleration: Optional[float] = None
    debug: Optional[bool] = None

from __future__ import annotations

"""
File: pathsim/sim/world.py
Purpose: Build engine inputs from the environment and the solve result.
Key responsibilities:
- Convert solver task entries into immutable Task records.
- Resolve each robot's start position and display colour.
- Compute the planned Manhattan step budget used for progress.
"""

import logging
from typing import Mapping, Sequence

from pathsim.schemas import Environment, SolveResult, SolveTask
from pathsim.sim.entities import Task
from pathsim.sim.nodes import NodeResolver

logger = logging.getLogger("path-sim.world")

ROBOT_COLORS = ("#4F46E5", "#7C3AED", "#E11D48", "#0891B2", "#A16207")


def task_from_schema(item: SolveTask) -> Task:
    """Classify a solver task entry and freeze it."""
    raw = item.task
    pickup_id: str | None = None
    dropoff_id: str | None = None
    if isinstance(raw, list) and len(raw) == 2:
        kind = "delivery"
        pickup_id, dropoff_id = str(raw[0]), str(raw[1])
    elif raw == "recharge":
        kind = "recharge"
    elif raw == "recharge_in_place":
        kind = "recharge_in_place"
    else:
        kind = "transit"
    return Task(
        kind=kind,
        path=tuple(str(node_id) for node_id in item.path or ()),
        pickup_id=pickup_id,
        dropoff_id=dropoff_id,
        total_distance=item.total_distance,
        battery_remaining=item.battery_remaining,
        completion_time=item.completion_time,
        recharge_time=item.recharge_time,
        battery_capacity=item.battery_capacity,
        max_distance=item.max_distance,
    )


def build_plan(result: SolveResult) -> dict[str, tuple[Task, ...]]:
    """Return robot id -> ordered tasks, preserving the solver's robot order."""
    return {robot_id: tuple(task_from_schema(item) for item in tasks) for robot_id, tasks in result.robots.items()}


def start_position(environment: Environment, robot_id: str) -> tuple[float, float]:
    """Robot's declared position, else its station's position, else the origin."""
    robot = next((r for r in environment.elements.robots if r.id == robot_id), None)
    if robot is None:
        logger.warning("robot %s not declared in environment, starting at origin", robot_id)
        return (0.0, 0.0)
    if robot.position is not None:
        return (float(robot.position[0]), float(robot.position[1]))
    if robot.station_id:
        station = next((s for s in environment.elements.robot_stations if s.id == robot.station_id), None)
        if station is not None:
            return (float(station.position[0]), float(station.position[1]))
    logger.warning("robot %s has no position or known station, starting at origin", robot_id)
    return (0.0, 0.0)


def robot_color(index: int) -> str:
    return ROBOT_COLORS[index % len(ROBOT_COLORS)]


def planned_steps(plans: Mapping[str, Sequence[Task]], resolver: NodeResolver) -> float:
    """Sum of Manhattan distances between consecutive waypoints of every task path."""
    total = 0.0
    for tasks in plans.values():
        for task in tasks:
            for a, b in zip(task.path, task.path[1:]):
                start = resolver.resolve(a)
                end = resolver.resolve(b)
                if start is None or end is None:
                    continue
                total += abs(end.x - start.x) + abs(end.y - start.y)
    return total

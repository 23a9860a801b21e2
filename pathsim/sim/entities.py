from __future__ import annotations

"""
File: pathsim/sim/entities.py
Purpose: Core dataclasses and type aliases for simulation state.
"""

from dataclasses import dataclass
from typing import Literal


NodeKind = Literal["pickup", "dropoff", "station", "robot", "navigation"]
TaskKind = Literal["delivery", "recharge", "recharge_in_place", "transit"]
MotionPhase = Literal["idle", "accelerating", "cruising", "decelerating", "recharging", "done"]

FULL_STOP_KINDS: frozenset[str] = frozenset({"pickup", "dropoff"})
RECHARGE_KINDS: frozenset[str] = frozenset({"recharge", "recharge_in_place"})


@dataclass(frozen=True)
class Node:
    """Addressable point of the environment."""
    id: str
    x: float
    y: float
    kind: NodeKind

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def requires_full_stop(self) -> bool:
        """Pickups and dropoffs are served at rest; other nodes are passed through."""
        return self.kind in FULL_STOP_KINDS


@dataclass(frozen=True)
class Task:
    """One solver-planned unit of work with its authoritative checkpoints."""
    kind: TaskKind
    path: tuple[str, ...] = ()
    pickup_id: str | None = None
    dropoff_id: str | None = None
    total_distance: float | None = None
    battery_remaining: float | None = None
    completion_time: float | None = None
    recharge_time: float | None = None
    battery_capacity: float | None = None
    max_distance: float | None = None

    @property
    def is_recharge(self) -> bool:
        return self.kind in RECHARGE_KINDS

    @property
    def is_malformed(self) -> bool:
        """A task with nothing to travel and nothing to do in place."""
        return not self.path and not self.is_recharge


@dataclass(frozen=True)
class RobotAgent:
    """Robot state tracked by the simulation engine.

    Records are never mutated; every transition returns a new record via
    ``dataclasses.replace``.
    """
    id: str
    x: float
    y: float
    color: str = "#4F46E5"
    speed: float = 0.0
    phase: MotionPhase = "idle"
    target_x: float | None = None
    target_y: float | None = None
    task_index: int = 0
    path: tuple[str, ...] = ()
    path_index: int = 0
    next_node_id: str | None = None
    battery: float = 100.0
    battery_capacity: float = 100.0
    max_distance: float = 1000.0
    distance_since_charge: float = 0.0
    distance_traveled: float = 0.0
    recharging: bool = False
    recharge_start_s: float = 0.0
    recharge_duration_s: float = 0.0
    recharge_remaining_s: float = 0.0
    tasks_completed: int = 0
    task_counted: bool = False
    task_start_s: float | None = None
    at_pickup: bool = False
    at_dropoff: bool = False
    steps_complete: int = 0
    low_battery: bool = False

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def done(self) -> bool:
        return self.phase == "done"

    @property
    def in_motion(self) -> bool:
        return self.speed > 0.0 and not self.recharging


@dataclass(frozen=True)
class SimulationState:
    """Committed per-tick state of every robot."""
    robots: tuple[RobotAgent, ...]
    tick: int = 0
    elapsed_s: float = 0.0

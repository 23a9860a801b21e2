from __future__ import annotations

"""
File: pathsim/sim/metrics.py
Purpose: Incremental run metrics folded in once per tick.
Key responsibilities:
- Elapsed simulated time, total and per-robot distance.
- Task completion counters and a running average task time.
"""

from dataclasses import dataclass, field
import logging
from typing import Mapping

logger = logging.getLogger("path-sim.metrics")


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only view of the aggregate metrics after a tick."""
    elapsed_time: float
    total_distance: float
    robot_distances: dict[str, float]
    total_tasks: int
    completed_tasks: int
    tasks_per_robot: dict[str, dict[str, int]]
    avg_task_time: float
    last_task_completion_time: float

    def as_dict(self) -> dict:
        return {
            "elapsed_time": round(self.elapsed_time, 3),
            "total_distance": round(self.total_distance, 3),
            "robot_distances": {k: round(v, 3) for k, v in self.robot_distances.items()},
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "tasks_per_robot": {k: dict(v) for k, v in self.tasks_per_robot.items()},
            "avg_task_time": round(self.avg_task_time, 3),
            "last_task_completion_time": round(self.last_task_completion_time, 3),
        }


@dataclass
class MetricsAggregator:
    """Running totals for one simulation run."""
    task_totals: dict[str, int]
    elapsed_time: float = 0.0
    total_distance: float = 0.0
    robot_distances: dict[str, float] = field(default_factory=dict)
    completed_by_robot: dict[str, int] = field(default_factory=dict)
    completed_tasks: int = 0
    avg_task_time: float = 0.0
    last_task_completion_time: float = 0.0

    @property
    def total_tasks(self) -> int:
        return sum(self.task_totals.values())

    def reset(self) -> None:
        """Discard everything except the planned task totals."""
        self.elapsed_time = 0.0
        self.total_distance = 0.0
        self.robot_distances = {}
        self.completed_by_robot = {}
        self.completed_tasks = 0
        self.avg_task_time = 0.0
        self.last_task_completion_time = 0.0

    def fold(
        self,
        sim_dt: float,
        distance_deltas: Mapping[str, float],
        tasks_completed: Mapping[str, int],
    ) -> None:
        """Fold one tick's deltas in; `tasks_completed` holds each robot's running count."""
        self.elapsed_time += sim_dt
        for robot_id, delta in distance_deltas.items():
            if delta <= 0:
                continue
            self.total_distance += delta
            self.robot_distances[robot_id] = self.robot_distances.get(robot_id, 0.0) + delta

        newly_completed = 0
        for robot_id, count in tasks_completed.items():
            previous = self.completed_by_robot.get(robot_id, 0)
            if count > previous:
                newly_completed += count - previous
                self.completed_by_robot[robot_id] = count
        if newly_completed == 0:
            return

        since_last = self.elapsed_time - self.last_task_completion_time
        total = self.completed_tasks + newly_completed
        self.avg_task_time = (self.avg_task_time * self.completed_tasks + since_last * newly_completed) / total
        self.completed_tasks = total
        self.last_task_completion_time = self.elapsed_time
        logger.info(
            "completed %d new task(s), %d/%d done, avg task time %.1fs",
            newly_completed,
            self.completed_tasks,
            self.total_tasks,
            self.avg_task_time,
        )

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            elapsed_time=self.elapsed_time,
            total_distance=self.total_distance,
            robot_distances=dict(self.robot_distances),
            total_tasks=self.total_tasks,
            completed_tasks=self.completed_tasks,
            tasks_per_robot={
                robot_id: {"total": total, "completed": self.completed_by_robot.get(robot_id, 0)}
                for robot_id, total in self.task_totals.items()
            },
            avg_task_time=self.avg_task_time,
            last_task_completion_time=self.last_task_completion_time,
        )

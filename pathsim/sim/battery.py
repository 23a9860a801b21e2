from __future__ import annotations

"""
File: pathsim/sim/battery.py
Purpose: Battery depletion and recharge-session bookkeeping.
Key responsibilities:
- Deplete charge linearly with distance since the last recharge.
- Reconcile charge with solver checkpoints at task boundaries.
- Run recharge sessions against the simulated clock.
"""

from dataclasses import dataclass, replace
import logging

from pathsim.settings import Settings
from pathsim.sim.entities import RobotAgent, Task

logger = logging.getLogger("path-sim.battery")

# Absorbs float drift when the clock is a sum of fractional ticks.
_CLOCK_EPSILON = 1e-9


def level_for_distance(distance: float, max_distance: float, capacity: float) -> float:
    """Linear charge model; a non-positive range holds the battery at capacity."""
    if max_distance <= 0:
        return capacity
    level = capacity * (1.0 - distance / max_distance)
    return max(0.0, min(capacity, level))


@dataclass(frozen=True)
class BatteryModel:
    """Charge model shared by every robot of a run."""
    default_capacity: float = 100.0
    default_max_distance: float = 1000.0
    default_recharge_minutes: float = 6.0
    low_battery_threshold: float = 15.0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        battery_capacity: float | None = None,
        max_distance: float | None = None,
    ) -> BatteryModel:
        return cls(
            default_capacity=settings.battery_capacity if battery_capacity is None else battery_capacity,
            default_max_distance=settings.max_distance if max_distance is None else max_distance,
            default_recharge_minutes=settings.default_recharge_minutes,
            low_battery_threshold=settings.low_battery_threshold,
        )

    def limits_for(self, task: Task | None) -> tuple[float, float]:
        """Return (capacity, max_distance), letting the task override run defaults."""
        capacity = self.default_capacity
        max_distance = self.default_max_distance
        if task is not None:
            if task.battery_capacity is not None:
                capacity = task.battery_capacity
            if task.max_distance is not None:
                max_distance = task.max_distance
        return max(0.0, capacity), max_distance

    def baseline(self, task: Task, capacity: float, max_distance: float) -> tuple[float, float] | None:
        """Charge and distance-since-charge implied by a task's solver checkpoints.

        Returns None when the task declares neither checkpoint. A non-positive
        range holds the battery at capacity whatever the checkpoints say.
        """
        if max_distance <= 0:
            return capacity, 0.0
        if task.battery_remaining is not None:
            battery = max(0.0, min(capacity, task.battery_remaining))
            if max_distance > 0 and capacity > 0:
                distance = max_distance * (1.0 - battery / capacity)
            else:
                distance = 0.0
            return battery, distance
        if task.total_distance is not None:
            distance = max(0.0, task.total_distance)
            return level_for_distance(distance, max_distance, capacity), distance
        return None

    def deplete_on_move(self, agent: RobotAgent, delta: float, task: Task | None) -> RobotAgent:
        """Fold distance traveled into the charge level."""
        if delta <= 0 or agent.recharging or (task is not None and task.is_recharge):
            return agent
        distance = agent.distance_since_charge + delta
        battery = level_for_distance(distance, agent.max_distance, agent.battery_capacity)
        low = battery <= self.low_battery_threshold
        if low and not agent.low_battery:
            logger.warning("robot %s low battery %.1f%%", agent.id, battery)
        return replace(agent, distance_since_charge=distance, battery=battery, low_battery=low)

    def start_recharge(self, agent: RobotAgent, task: Task, now_s: float) -> RobotAgent:
        """Open a recharge session at the current simulated time."""
        if agent.recharging:
            return agent
        minutes = task.recharge_time if task.recharge_time is not None else self.default_recharge_minutes
        duration = max(0.0, minutes * 60.0)
        logger.info(
            "robot %s recharge started at %s battery=%.2f%% duration=%.0fs sim_time=%.1fs",
            agent.id,
            agent.next_node_id or (agent.path[-1] if agent.path else "in place"),
            agent.battery,
            duration,
            now_s,
        )
        return replace(
            agent,
            recharging=True,
            recharge_start_s=now_s,
            recharge_duration_s=duration,
            recharge_remaining_s=duration,
            speed=0.0,
            phase="recharging",
            target_x=None,
            target_y=None,
        )

    def tick(self, agent: RobotAgent, task: Task | None, now_s: float) -> tuple[RobotAgent, bool]:
        """Advance a recharge session; return the agent and whether it finished."""
        if not agent.recharging:
            return agent, False
        remaining = agent.recharge_duration_s - (now_s - agent.recharge_start_s)
        if remaining > _CLOCK_EPSILON:
            return replace(agent, recharge_remaining_s=remaining, speed=0.0), False

        capacity = agent.battery_capacity
        restored = capacity
        if task is not None and task.battery_remaining is not None and agent.max_distance > 0:
            restored = max(0.0, min(capacity, task.battery_remaining))
        logger.info(
            "robot %s recharge finished after %.1fs battery=%.2f%% (distance counter %.2fm reset)",
            agent.id,
            now_s - agent.recharge_start_s,
            restored,
            agent.distance_since_charge,
        )
        finished = replace(
            agent,
            recharging=False,
            recharge_remaining_s=0.0,
            battery=restored,
            distance_since_charge=0.0,
            low_battery=restored <= self.low_battery_threshold,
            speed=0.0,
            phase="idle",
        )
        return finished, True

from __future__ import annotations

"""
File: pathsim/sim/executor.py
Purpose: Walk each robot's planned task list waypoint by waypoint.
Key responsibilities:
- Enter tasks and reconcile battery with solver checkpoints.
- Record pickup/dropoff arrivals once and count completed deliveries.
- Hand recharge tasks to the battery model at the end of their path.
"""

from dataclasses import replace
import logging
from typing import Mapping, Sequence

from pathsim.sim.battery import BatteryModel
from pathsim.sim.entities import Node, RobotAgent, Task

logger = logging.getLogger("path-sim.executor")


class PathExecutor:
    """Task and waypoint sequencing for every robot of a plan."""
    def __init__(self, plans: Mapping[str, Sequence[Task]], battery: BatteryModel) -> None:
        self.plans: dict[str, tuple[Task, ...]] = {robot_id: tuple(tasks) for robot_id, tasks in plans.items()}
        self.battery = battery

    def tasks_for(self, robot_id: str) -> tuple[Task, ...]:
        return self.plans.get(robot_id, ())

    def active_task(self, agent: RobotAgent) -> Task | None:
        tasks = self.tasks_for(agent.id)
        if 0 <= agent.task_index < len(tasks):
            return tasks[agent.task_index]
        return None

    def enter_task(self, agent: RobotAgent, index: int, now_s: float) -> RobotAgent:
        """Make task `index` active, or mark the robot done past the last task."""
        tasks = self.tasks_for(agent.id)
        if index >= len(tasks):
            if tasks:
                logger.info("robot %s finished all %d tasks at sim_time=%.1fs", agent.id, len(tasks), now_s)
            return replace(
                agent,
                task_index=len(tasks),
                path=(),
                path_index=0,
                next_node_id=None,
                target_x=None,
                target_y=None,
                speed=0.0,
                phase="done",
            )

        task = tasks[index]
        capacity, max_distance = self.battery.limits_for(task)
        battery = max(0.0, min(capacity, agent.battery))
        distance_since_charge = agent.distance_since_charge
        # A recharge task declares its post-recharge charge, applied when the session ends.
        checkpoint = None if task.is_recharge else self.battery.baseline(task, capacity, max_distance)
        if checkpoint is not None:
            battery, distance_since_charge = checkpoint

        logger.info(
            "robot %s entering task %d/%d kind=%s first_node=%s battery=%.2f%%",
            agent.id,
            index + 1,
            len(tasks),
            task.kind,
            task.path[0] if task.path else None,
            battery,
        )
        return replace(
            agent,
            task_index=index,
            path=task.path,
            path_index=0,
            next_node_id=task.path[0] if task.path else None,
            target_x=None,
            target_y=None,
            battery_capacity=capacity,
            max_distance=max_distance,
            battery=battery,
            distance_since_charge=distance_since_charge,
            low_battery=battery <= self.battery.low_battery_threshold,
            task_counted=False,
            phase="idle" if agent.speed <= 0.0 else agent.phase,
        )

    def next_task(self, agent: RobotAgent, now_s: float) -> RobotAgent:
        return self.enter_task(agent, agent.task_index + 1, now_s)

    def skip_malformed(self, agent: RobotAgent, now_s: float) -> RobotAgent:
        """Drop a task that has neither a path nor an in-place action."""
        logger.warning("robot %s task %d has no path and is not a recharge, skipping", agent.id, agent.task_index + 1)
        return self.next_task(agent, now_s)

    def on_departure(self, agent: RobotAgent) -> RobotAgent:
        """Leaving a serviced stop clears the at-pickup/at-dropoff flags."""
        if not (agent.at_pickup or agent.at_dropoff):
            return agent
        return replace(agent, at_pickup=False, at_dropoff=False)

    def on_arrival(self, agent: RobotAgent, node: Node, now_s: float) -> RobotAgent:
        """Apply pickup/dropoff effects of reaching `node`, then advance the path."""
        task = self.active_task(agent)
        agent = replace(agent, steps_complete=agent.steps_complete + 1, target_x=None, target_y=None)
        if task is not None and task.kind == "delivery":
            if node.kind == "pickup" and node.id == task.pickup_id and not agent.at_pickup:
                logger.info(
                    "robot %s reached pickup %s for task %s -> %s",
                    agent.id,
                    node.id,
                    task.pickup_id,
                    task.dropoff_id,
                )
                agent = replace(
                    agent,
                    at_pickup=True,
                    at_dropoff=False,
                    task_start_s=agent.task_start_s if agent.task_start_s is not None else now_s,
                )
            elif (
                node.kind == "dropoff"
                and node.id == task.dropoff_id
                and not agent.at_dropoff
                and not agent.task_counted
            ):
                completed = agent.tasks_completed + 1
                logger.info(
                    "robot %s reached dropoff %s, completed task #%d: %s -> %s",
                    agent.id,
                    node.id,
                    completed,
                    task.pickup_id,
                    task.dropoff_id,
                )
                agent = replace(
                    agent,
                    at_pickup=False,
                    at_dropoff=True,
                    tasks_completed=completed,
                    task_counted=True,
                    task_start_s=None,
                )
        return self.advance(agent, now_s)

    def advance(self, agent: RobotAgent, now_s: float) -> RobotAgent:
        """Move to the next waypoint, start a recharge, or move to the next task."""
        path_index = min(agent.path_index + 1, len(agent.path))
        if path_index < len(agent.path):
            return replace(agent, path_index=path_index, next_node_id=agent.path[path_index])

        agent = replace(agent, path_index=path_index, next_node_id=None)
        task = self.active_task(agent)
        if task is not None and task.is_recharge:
            return self.battery.start_recharge(agent, task, now_s)
        return self.next_task(agent, now_s)

from __future__ import annotations

"""
File: pathsim/sim/engine.py
Purpose: Deterministic multi-robot path simulation engine.
Key responsibilities:
- Own every RobotAgent and commit a new state once per tick.
- Drive path execution, kinematics and battery for each robot in a fixed order.
- Fold distance/time/task deltas into run metrics.
- Expose play/pause/reset, runtime controls and per-tick snapshots.
"""

from dataclasses import dataclass, replace
import logging
from typing import Any, Mapping, Sequence

from pathsim.schemas import Environment, ScenarioParameters, SolveResult
from pathsim.settings import Settings, settings as default_settings
from pathsim.sim.battery import BatteryModel
from pathsim.sim.entities import RobotAgent, SimulationState, Task
from pathsim.sim.executor import PathExecutor
from pathsim.sim.metrics import MetricsAggregator, MetricsSnapshot
from pathsim.sim.motion import MotionParams, SafetyValves, advance
from pathsim.sim.nodes import NodeResolver
from pathsim.sim.world import build_plan, planned_steps, robot_color, start_position

logger = logging.getLogger("path-sim.engine")

SPEED_MULTIPLIERS = (0.5, 1.0, 2.0, 4.0)
MAX_SPEED_RANGE = (0.1, 5.0)
ACCELERATION_RANGE = (0.1, 3.0)


@dataclass(frozen=True)
class SimulationSnapshot:
    """Read-only projection of all robots plus aggregate metrics for one tick."""
    tick: int
    elapsed_s: float
    playing: bool
    terminal: bool
    speed_multiplier: float
    max_speed: float
    acceleration: float
    planned_steps: float
    robots: tuple[RobotAgent, ...]
    metrics: MetricsSnapshot
    solver_stats: dict[str, Any] | None = None

    @property
    def progress(self) -> float:
        """Share of the planned Manhattan distance covered so far."""
        if self.terminal:
            return 1.0
        if self.planned_steps <= 0:
            return 0.0
        return min(1.0, self.metrics.total_distance / self.planned_steps)

    def robot(self, robot_id: str) -> RobotAgent:
        return next(r for r in self.robots if r.id == robot_id)

    def as_dict(self) -> dict:
        """Serializable form for the renderer/dashboard."""
        return {
            "tick": self.tick,
            "elapsed_s": round(self.elapsed_s, 3),
            "playing": self.playing,
            "terminal": self.terminal,
            "progress": round(self.progress, 4),
            "controls": {
                "speed_multiplier": self.speed_multiplier,
                "max_speed": self.max_speed,
                "acceleration": self.acceleration,
            },
            "robots": [
                {
                    "id": r.id,
                    "color": r.color,
                    "x": round(r.x, 3),
                    "y": round(r.y, 3),
                    "speed": round(r.speed, 3),
                    "phase": r.phase,
                    "moving": r.in_motion,
                    "task_index": r.task_index,
                    "next_node_id": r.next_node_id,
                    "battery": round(r.battery, 3),
                    "low_battery": r.low_battery,
                    "recharging": r.recharging,
                    "recharge_remaining_s": round(r.recharge_remaining_s, 3),
                    "tasks_completed": r.tasks_completed,
                    "task_start_s": r.task_start_s,
                    "at_pickup": r.at_pickup,
                    "at_dropoff": r.at_dropoff,
                    "steps_complete": r.steps_complete,
                }
                for r in self.robots
            ],
            "metrics": self.metrics.as_dict(),
            "solver_stats": self.solver_stats,
        }


class SimulationEngine:
    """Simulation engine that advances every robot once per tick."""
    def __init__(
        self,
        resolver: NodeResolver,
        plans: Mapping[str, Sequence[Task]],
        start_positions: Mapping[str, tuple[float, float]],
        motion: MotionParams | None = None,
        valves: SafetyValves | None = None,
        battery: BatteryModel | None = None,
        speed_multiplier: float = 1.0,
        solver_stats: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize the engine and build the initial robot states."""
        self.resolver = resolver
        self.battery = battery or BatteryModel()
        self.executor = PathExecutor(plans, self.battery)
        self.motion = motion or MotionParams()
        self.valves = valves or SafetyValves()
        self.start_positions = dict(start_positions)
        self.solver_stats = dict(solver_stats) if solver_stats is not None else None
        self.robot_order: tuple[str, ...] = tuple(self.executor.plans)
        self.speed_multiplier = 1.0
        self.set_speed_multiplier(speed_multiplier)
        self.planned_steps = planned_steps(self.executor.plans, resolver)

        self.playing = False
        self.generation = 0
        self.metrics = MetricsAggregator(
            task_totals={robot_id: len(tasks) for robot_id, tasks in self.executor.plans.items()}
        )
        self._unresolved: set[tuple[str, str]] = set()
        self.state = self._initial_state()

    @classmethod
    def from_inputs(
        cls,
        environment: Environment,
        result: SolveResult,
        parameters: ScenarioParameters | None = None,
        config: Settings = default_settings,
    ) -> SimulationEngine:
        """Build an engine from backend payloads and the service settings."""
        parameters = parameters or ScenarioParameters(
            battery_capacity=config.battery_capacity,
            max_distance=config.max_distance,
        )
        plans = build_plan(result)
        return cls(
            resolver=NodeResolver.from_environment(environment),
            plans=plans,
            start_positions={robot_id: start_position(environment, robot_id) for robot_id in plans},
            motion=MotionParams.from_settings(config),
            valves=SafetyValves.from_settings(config),
            battery=BatteryModel.from_settings(
                config,
                battery_capacity=parameters.battery_capacity,
                max_distance=parameters.max_distance,
            ),
            speed_multiplier=config.speed_multiplier,
            solver_stats=result.stats.model_dump() if result.stats is not None else None,
        )

    def _initial_state(self) -> SimulationState:
        robots: list[RobotAgent] = []
        for index, robot_id in enumerate(self.robot_order):
            x, y = self.start_positions.get(robot_id, (0.0, 0.0))
            capacity, max_distance = self.battery.limits_for(None)
            agent = RobotAgent(
                id=robot_id,
                x=float(x),
                y=float(y),
                color=robot_color(index),
                battery=capacity,
                battery_capacity=capacity,
                max_distance=max_distance,
            )
            logger.debug("robot %s starts at (%.2f, %.2f)", robot_id, agent.x, agent.y)
            robots.append(self.executor.enter_task(agent, 0, 0.0))
        return SimulationState(robots=tuple(robots))

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def reset(self) -> None:
        """Restore declared start positions/battery and discard metrics."""
        self.playing = False
        self.generation += 1
        self.metrics.reset()
        self._unresolved.clear()
        self.state = self._initial_state()

    def set_speed_multiplier(self, value: float) -> None:
        if value not in SPEED_MULTIPLIERS:
            raise ValueError(f"speed multiplier must be one of {SPEED_MULTIPLIERS}, got {value}")
        self.speed_multiplier = float(value)

    def set_max_speed(self, value: float) -> None:
        low, high = MAX_SPEED_RANGE
        if not low <= value <= high:
            raise ValueError(f"max speed must be within [{low}, {high}] m/s, got {value}")
        self.motion = replace(self.motion, max_speed=float(value))

    def set_acceleration(self, value: float) -> None:
        low, high = ACCELERATION_RANGE
        if not low <= value <= high:
            raise ValueError(f"acceleration must be within [{low}, {high}] m/s^2, got {value}")
        self.motion = replace(self.motion, acceleration=float(value))

    def is_terminal(self) -> bool:
        """True once every robot has exhausted its task list."""
        return all(robot.done for robot in self.state.robots)

    def tick(self, dt: float) -> bool:
        """Advance the simulation by dt wall seconds; return True when terminal."""
        if dt < 0:
            raise ValueError(f"dt must be >= 0, got {dt}")
        sim_dt = dt * self.speed_multiplier
        now_s = self.metrics.elapsed_time + sim_dt

        robots: list[RobotAgent] = []
        distance_deltas: dict[str, float] = {}
        for agent in self.state.robots:
            updated, moved = self._update_robot(agent, sim_dt, now_s)
            robots.append(updated)
            distance_deltas[agent.id] = moved

        self.metrics.fold(
            sim_dt,
            distance_deltas,
            {robot.id: robot.tasks_completed for robot in robots},
        )
        self.state = SimulationState(
            robots=tuple(robots),
            tick=self.state.tick + 1,
            elapsed_s=self.metrics.elapsed_time,
        )
        return self.is_terminal()

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            tick=self.state.tick,
            elapsed_s=self.state.elapsed_s,
            playing=self.playing,
            terminal=self.is_terminal(),
            speed_multiplier=self.speed_multiplier,
            max_speed=self.motion.max_speed,
            acceleration=self.motion.acceleration,
            planned_steps=self.planned_steps,
            robots=self.state.robots,
            metrics=self.metrics.snapshot(),
            solver_stats=self.solver_stats,
        )

    def _update_robot(self, agent: RobotAgent, sim_dt: float, now_s: float) -> tuple[RobotAgent, float]:
        """Compute one robot's next record from its committed record."""
        if agent.done:
            return agent, 0.0

        task = self.executor.active_task(agent)
        if agent.recharging:
            agent, finished = self.battery.tick(agent, task, now_s)
            if finished:
                agent = self.executor.next_task(agent, now_s)
            return agent, 0.0

        if task is None:
            return self.executor.enter_task(agent, agent.task_index, now_s), 0.0

        if agent.next_node_id is None:
            if task.is_recharge:
                return self.battery.start_recharge(agent, task, now_s), 0.0
            return self.executor.skip_malformed(agent, now_s), 0.0

        node = self.resolver.resolve(agent.next_node_id)
        if node is None:
            key = (agent.id, agent.next_node_id)
            if key not in self._unresolved:
                self._unresolved.add(key)
                logger.error("robot %s cannot resolve node %s, holding position", agent.id, agent.next_node_id)
            return agent, 0.0

        result = advance(
            x=agent.x,
            y=agent.y,
            target_x=node.x,
            target_y=node.y,
            speed=agent.speed,
            phase=agent.phase,
            dt=sim_dt,
            requires_full_stop=node.requires_full_stop,
            params=self.motion,
            valves=self.valves,
        )
        if result.snapped:
            logger.debug("robot %s force-arrived at %s", agent.id, node.id)

        agent = replace(
            agent,
            x=result.x,
            y=result.y,
            speed=result.speed,
            phase=result.phase,
            target_x=node.x,
            target_y=node.y,
            distance_traveled=agent.distance_traveled + result.moved,
        )
        if result.moved > 0 and not result.arrived:
            agent = self.executor.on_departure(agent)
        agent = self.battery.deplete_on_move(agent, result.moved, task)
        if result.arrived:
            agent = self.executor.on_arrival(agent, node, now_s)
        return agent, result.moved

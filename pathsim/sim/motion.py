from __future__ import annotations

"""
File: pathsim/sim/motion.py
Purpose: Per-segment kinematic integrator for robot motion.
Key responsibilities:
- Accelerate, cruise and decelerate toward the current waypoint.
- Stop fully at pickups/dropoffs, slow to a floor speed at through-nodes.
- Never overshoot the waypoint; snap on arrival.
- Force arrival through configurable safety valves so approach always terminates.
"""

from dataclasses import dataclass
from math import hypot

from pathsim.settings import Settings
from pathsim.sim.entities import MotionPhase


@dataclass(frozen=True)
class MotionParams:
    """Kinematic limits applied on every tick."""
    max_speed: float = 1.0
    acceleration: float = 0.5
    min_speed_ratio: float = 0.3
    arrival_tolerance: float = 0.01

    @classmethod
    def from_settings(cls, settings: Settings) -> MotionParams:
        return cls(
            max_speed=settings.max_speed,
            acceleration=settings.acceleration,
            min_speed_ratio=settings.min_speed_ratio,
            arrival_tolerance=settings.arrival_tolerance,
        )

    @property
    def min_speed(self) -> float:
        """Floor speed when slowing for a through-node."""
        return self.max_speed * self.min_speed_ratio


@dataclass(frozen=True)
class SafetyValves:
    """Force-snap rules for a robot braking toward a full-stop waypoint.

    The thresholds are empirical; they exist because the braking integrator
    approaches the target asymptotically in floating point.
    """
    close_slow_distance: float = 0.5
    close_slow_speed: float = 0.05
    slow_distance: float = 2.0
    slow_speed: float = 0.2
    very_close_distance: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> SafetyValves:
        return cls(
            close_slow_distance=settings.snap_close_slow_distance,
            close_slow_speed=settings.snap_close_slow_speed,
            slow_distance=settings.snap_slow_distance,
            slow_speed=settings.snap_slow_speed,
            very_close_distance=settings.snap_very_close_distance,
        )

    def should_snap(self, distance: float, speed: float) -> bool:
        if distance < self.close_slow_distance and speed < self.close_slow_speed:
            return True
        if speed < self.slow_speed and distance < self.slow_distance:
            return True
        return distance < self.very_close_distance


@dataclass(frozen=True)
class MotionResult:
    """Outcome of one integration step."""
    x: float
    y: float
    speed: float
    phase: MotionPhase
    moved: float
    arrived: bool
    snapped: bool = False


def stopping_distance(speed: float, acceleration: float) -> float:
    """Distance needed to brake from speed to rest."""
    if acceleration <= 0:
        return float("inf")
    return (speed * speed) / (2.0 * acceleration)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _arrive(
    target_x: float,
    target_y: float,
    speed: float,
    full_stop: bool,
    moved: float,
    params: MotionParams,
    snapped: bool = False,
) -> MotionResult:
    """Snap onto the waypoint; full-stop waypoints zero the speed."""
    speed = 0.0 if full_stop else _clamp(speed, 0.0, params.max_speed)
    if speed <= 0.0:
        phase: MotionPhase = "idle"
    elif speed >= params.max_speed:
        phase = "cruising"
    else:
        phase = "accelerating"
    return MotionResult(
        x=target_x,
        y=target_y,
        speed=speed,
        phase=phase,
        moved=moved,
        arrived=True,
        snapped=snapped,
    )


def advance(
    x: float,
    y: float,
    target_x: float,
    target_y: float,
    speed: float,
    phase: MotionPhase,
    dt: float,
    requires_full_stop: bool,
    params: MotionParams,
    valves: SafetyValves | None = None,
) -> MotionResult:
    """Advance one robot toward its waypoint by dt simulated seconds."""
    valves = valves or SafetyValves()
    dx = target_x - x
    dy = target_y - y
    distance = hypot(dx, dy)
    speed = _clamp(speed, 0.0, params.max_speed)

    if distance <= params.arrival_tolerance:
        return _arrive(target_x, target_y, speed, requires_full_stop, distance, params)

    decelerating = phase == "decelerating"
    if not decelerating:
        braking = stopping_distance(speed, params.acceleration)
        if requires_full_stop and distance <= braking:
            decelerating = True
        elif not requires_full_stop and distance <= 0.5 * braking:
            decelerating = True

    delta_v = params.acceleration * dt
    if decelerating:
        if requires_full_stop:
            speed = max(speed - delta_v, 0.0)
            if valves.should_snap(distance, speed):
                return _arrive(target_x, target_y, speed, True, distance, params, snapped=True)
            next_phase: MotionPhase = "decelerating" if speed > 0.0 else "idle"
        else:
            min_speed = params.min_speed
            speed = min(speed, max(speed - delta_v, min_speed))
            next_phase = "decelerating" if speed > min_speed + 0.1 else "cruising"
    elif speed < params.max_speed:
        speed = min(speed + delta_v, params.max_speed)
        next_phase = "cruising" if speed >= params.max_speed else "accelerating"
    else:
        next_phase = "cruising"

    speed = _clamp(speed, 0.0, params.max_speed)
    moved = min(speed * dt, distance)
    if distance - moved < params.arrival_tolerance:
        return _arrive(target_x, target_y, speed, requires_full_stop, distance, params)

    ratio = moved / distance
    return MotionResult(
        x=x + dx * ratio,
        y=y + dy * ratio,
        speed=speed,
        phase=next_phase,
        moved=moved,
        arrived=False,
    )

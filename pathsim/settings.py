"""
File: pathsim/settings.py
Purpose: Environment-backed configuration for the path simulation service.
Key responsibilities:
- Parse backend API settings.
- Define motion, battery and arrival-snapping defaults for the engine.
"""

from dataclasses import dataclass
import os


def _float_env(name: str, default: float) -> float:
    """Parse a float env var with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return float(raw)


def _int_env(name: str, default: int = 0) -> int:
    """Parse an integer env var with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Simulation configuration parsed from environment."""
    backend_api_url: str = os.getenv("BACKEND_API_URL", "http://localhost:8000/api")
    backend_api_token: str = os.getenv("BACKEND_API_TOKEN", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    sim_tick_hz: int = _int_env("SIM_TICK_HZ", 60)
    max_speed: float = _float_env("SIM_MAX_SPEED", 1.0)
    acceleration: float = _float_env("SIM_ACCELERATION", 0.5)
    speed_multiplier: float = _float_env("SIM_SPEED_MULTIPLIER", 1.0)
    battery_capacity: float = _float_env("BATTERY_CAPACITY", 100.0)
    max_distance: float = _float_env("MAX_DISTANCE", 1000.0)
    default_recharge_minutes: float = _float_env("DEFAULT_RECHARGE_MINUTES", 6.0)
    low_battery_threshold: float = _float_env("LOW_BATTERY_THRESHOLD", 15.0)
    min_speed_ratio: float = _float_env("MIN_SPEED_RATIO", 0.3)
    arrival_tolerance: float = _float_env("ARRIVAL_TOLERANCE", 0.01)
    snap_close_slow_distance: float = _float_env("SNAP_CLOSE_SLOW_DISTANCE", 0.5)
    snap_close_slow_speed: float = _float_env("SNAP_CLOSE_SLOW_SPEED", 0.05)
    snap_slow_distance: float = _float_env("SNAP_SLOW_DISTANCE", 2.0)
    snap_slow_speed: float = _float_env("SNAP_SLOW_SPEED", 0.2)
    snap_very_close_distance: float = _float_env("SNAP_VERY_CLOSE_DISTANCE", 0.1)


settings = Settings()

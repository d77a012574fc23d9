from __future__ import annotations

from typing import Iterable, Tuple

from life_circle.models import DEFAULT_TIME_THRESHOLDS, DEFAULT_WALK_SPEED

__all__ = [
    "MIN_WALK_SPEED",
    "MAX_WALK_SPEED",
    "distance_for_time",
    "max_distance",
    "normalize_thresholds",
    "default_walk_speed",
    "clamp_walk_speed",
]

MIN_WALK_SPEED = 3.0
MAX_WALK_SPEED = 7.0


def distance_for_time(speed_kmh: float, minutes: float) -> float:
    """Meters covered in `minutes` at `speed_kmh` (km/h * min * 1000 / 60)."""
    return speed_kmh * minutes * 1000 / 60


def normalize_thresholds(thresholds: Iterable[int] | None) -> Tuple[int, ...]:
    values = tuple(thresholds or ())
    return values or DEFAULT_TIME_THRESHOLDS


def default_walk_speed(speed_kmh: float | None) -> float:
    if speed_kmh is None or speed_kmh <= 0:
        return DEFAULT_WALK_SPEED
    return float(speed_kmh)


def clamp_walk_speed(speed_kmh: float | None) -> float:
    """Evaluation-path speed: defaulted, then clamped into [3.0, 7.0] km/h."""
    speed = default_walk_speed(speed_kmh)
    return min(MAX_WALK_SPEED, max(MIN_WALK_SPEED, speed))


def max_distance(speed_kmh: float, thresholds: Iterable[int] | None = None) -> float:
    """Distance reachable within the largest threshold."""
    return distance_for_time(default_walk_speed(speed_kmh), max(normalize_thresholds(thresholds)))

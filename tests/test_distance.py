from __future__ import annotations

import pytest

from life_circle.distance import (
    clamp_walk_speed,
    default_walk_speed,
    distance_for_time,
    max_distance,
    normalize_thresholds,
)
from life_circle.models import DEFAULT_TIME_THRESHOLDS


@pytest.mark.parametrize("speed", [3.0, 4.2, 5.0, 7.0])
@pytest.mark.parametrize("minutes", [0, 5, 10, 15, 22.5])
def test_distance_for_time_is_linear(speed: float, minutes: float) -> None:
    assert distance_for_time(speed, minutes) == speed * minutes * 1000 / 60


def test_max_distance_for_default_thresholds() -> None:
    assert max_distance(5.0, [5, 10, 15]) == 1250.0
    assert max_distance(5.0) == 1250.0


def test_empty_thresholds_fall_back_to_defaults() -> None:
    assert normalize_thresholds([]) == DEFAULT_TIME_THRESHOLDS
    assert normalize_thresholds(None) == DEFAULT_TIME_THRESHOLDS
    assert normalize_thresholds([20]) == (20,)


@pytest.mark.parametrize("raw, expected", [(None, 5.0), (0, 5.0), (-2, 5.0), (9.0, 9.0), (1.0, 1.0)])
def test_default_walk_speed_does_not_clamp(raw, expected) -> None:
    assert default_walk_speed(raw) == expected


@pytest.mark.parametrize("raw, expected", [(None, 5.0), (0, 5.0), (1.0, 3.0), (2.99, 3.0), (6.5, 6.5), (12.0, 7.0)])
def test_clamp_walk_speed(raw, expected) -> None:
    assert clamp_walk_speed(raw) == expected

from __future__ import annotations

import pytest

from fakes import square
from life_circle.context import Deadline
from life_circle.errors import EvaluationCancelled
from life_circle.models import POI, Coordinate
from life_circle.spatial_filter import filter_in_polygon


def _pois(n: int):
    return [
        POI(name=f"Shop {i}", category="commerce", subtype="convenience", coordinate=Coordinate(120.15 + i * 0.001, 30.28))
        for i in range(n)
    ]


def test_single_batch_query(engine) -> None:
    engine.inside = {0, 2}
    pois = _pois(4)
    kept = filter_in_polygon(engine, pois, square(120.15, 30.28, 0.01))
    assert [p.name for p in kept] == ["Shop 0", "Shop 2"]
    calls = engine.called("filter_points_in_polygon")
    assert len(calls) == 1
    points = calls[0][1]
    assert [p.idx for p in points] == [0, 1, 2, 3]
    assert points[1].lng == pois[1].lng


def test_empty_input_makes_no_query(engine) -> None:
    assert filter_in_polygon(engine, [], square(120.15, 30.28, 0.01)) == []
    assert not engine.called("filter_points_in_polygon")


def test_missing_polygon_returns_input(engine) -> None:
    pois = _pois(2)
    assert filter_in_polygon(engine, pois, None) == pois
    assert filter_in_polygon(engine, pois, {}) == pois
    assert not engine.called("filter_points_in_polygon")


def test_engine_failure_fails_open(engine, spatial_error, caplog) -> None:
    engine.fail["filter_points_in_polygon"] = spatial_error
    pois = _pois(3)
    assert filter_in_polygon(engine, pois, square(120.15, 30.28, 0.01)) == pois
    assert "unfiltered" in caplog.text


def test_cancelled_deadline_is_not_swallowed(engine, spatial_error) -> None:
    engine.fail["filter_points_in_polygon"] = spatial_error
    deadline = Deadline()
    deadline.cancel()
    with pytest.raises(EvaluationCancelled):
        filter_in_polygon(engine, _pois(2), square(120.15, 30.28, 0.01), deadline)

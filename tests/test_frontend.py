from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fakes import FakeMapAPI
from life_circle.config import AMapSettings, Settings
from life_circle.errors import EvaluationCancelled, SpatialEngineError
from life_circle.models import POIStatistics
from life_circle_frontend import create_app
from map_apis.data_types import ExternalPlace


@pytest.fixture
def map_api() -> FakeMapAPI:
    return FakeMapAPI([ExternalPlace("Fresh Market", "060501", "120.1505,30.2805")])


@pytest.fixture
def client(engine, map_api) -> TestClient:
    settings = Settings(evaluation_timeout=30.0, amap=AMapSettings(key="unused"))
    app = create_app(engine=engine, map_api=map_api, settings=settings, configure_logging=False)
    return TestClient(app)


def test_healthz(client) -> None:
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.text == "ok"


def test_analyze(client) -> None:
    resp = client.post("/api/v1/analyze", json={"lng": 120.15, "lat": 30.28, "walk_speed": 5})
    assert resp.status_code == 200
    body = resp.json()
    assert body["origin"] == [120.15, 30.28]
    assert body["grade"] == "B"
    assert body["total_score"] == 72.5
    assert {c["category"] for c in body["category_scores"]} == {"medical", "culture"}
    assert body["isochrone"]["type"] == "FeatureCollection"
    sources = [f["properties"]["source"] for f in body["pois"]["features"]]
    assert sources == ["local", "local", "external"]
    assert "roads" in body
    assert body["suggestions"]


def test_analyze_invalid_request(client) -> None:
    resp = client.post("/api/v1/analyze", json={"lat": 30.28})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid request"
    assert "lng" in resp.json()["details"]


def test_analyze_invalid_json(client) -> None:
    resp = client.post("/api/v1/analyze", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400


def test_analyze_fatal_stage(client, engine) -> None:
    engine.fail["compute_isochrones"] = SpatialEngineError("pgr_drivingDistance failed")
    resp = client.post("/api/v1/analyze", json={"lng": 120.15, "lat": 30.28})
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "analysis failed"
    assert body["details"].startswith("isochrone failed")


def test_isochrone(client, engine) -> None:
    resp = client.post("/api/v1/isochrone", json={"lng": 120.15, "lat": 30.28, "time_thresholds": [10, 5], "walk_speed": 9})
    assert resp.status_code == 200
    features = resp.json()["features"]
    assert [f["properties"].get("minutes") for f in features] == [10, 5, None]
    assert engine.called("compute_isochrones")[0][1:] == ((5, 10), 9.0)


def test_isochrone_failure(client, engine) -> None:
    engine.fail["compute_isochrones"] = SpatialEngineError("no road network")
    resp = client.post("/api/v1/isochrone", json={"lng": 120.15, "lat": 30.28})
    assert resp.status_code == 500
    assert resp.json()["error"] == "calculation failed"


def test_categories_and_standards_use_defaults(client) -> None:
    categories = client.get("/api/v1/poi/categories").json()["categories"]
    assert len(categories) == 8
    assert {"code", "name", "description", "weight", "sub_types"} <= set(categories[0])
    standards = client.get("/api/v1/evaluation/standards").json()["standards"]
    assert any(s["category"] == "medical" and s["required"] for s in standards)


def test_statistics(client, engine) -> None:
    engine.counts = {15: [POIStatistics("medical", "clinic", 3)]}
    resp = client.get("/api/v1/poi/statistics", params={"lng": 120.15, "lat": 30.28})
    assert resp.status_code == 200
    stats = resp.json()["statistics"]
    assert stats == [
        {"category": "medical", "sub_type": "clinic", "count": 3, "count_by_time": {"5": 0, "10": 0, "15": 3}}
    ]


def test_statistics_requires_origin(client) -> None:
    assert client.get("/api/v1/poi/statistics", params={"lng": 120.15}).status_code == 400


def test_analyze_non_finite_threshold_defaults(client, engine) -> None:
    resp = client.post("/api/v1/analyze", json={"lng": 120.15, "lat": 30.28, "time_threshold": "nan"})
    assert resp.status_code == 200
    assert engine.called("query_pois_in_isochrone")[0][1] == 15


@pytest.mark.parametrize("lng", ["nan", "inf", "200"])
def test_analyze_rejects_invalid_origin(client, lng) -> None:
    resp = client.post("/api/v1/analyze", json={"lng": lng, "lat": 30.28})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid request"


def test_isochrone_infinite_threshold_literal(client, engine) -> None:
    body = b'{"lng": 120.15, "lat": 30.28, "time_thresholds": [Infinity, 10]}'
    resp = client.post("/api/v1/isochrone", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 200
    assert engine.called("compute_isochrones")[0][1] == (10,)


@pytest.mark.parametrize("params", [{"lng": "east", "lat": "30.28"}, {"lng": "120.15", "lat": "nan"}])
def test_statistics_invalid_query_values(client, params) -> None:
    resp = client.get("/api/v1/poi/statistics", params=params)
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid request"


@pytest.mark.parametrize(
    "path, method",
    [("/api/v1/poi/categories", "fetch_categories"), ("/api/v1/evaluation/standards", "fetch_evaluation_standards")],
)
def test_reference_tables_time_out(client, engine, path, method) -> None:
    engine.fail[method] = EvaluationCancelled(method)
    resp = client.get(path)
    assert resp.status_code == 504
    assert resp.json()["details"] == f"{method} failed: deadline exceeded"

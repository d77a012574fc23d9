# life_circle_backend.py

from __future__ import annotations

import asyncio
import logging
import math
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from life_circle.context import Deadline
from life_circle.distance import clamp_walk_speed, default_walk_speed, max_distance, normalize_thresholds
from life_circle.errors import (
    EvaluationCancelled,
    EvaluationError,
    InvalidRequestError,
    SpatialEngineError,
)
from life_circle.geojson import isochrones_as_geojson, pois_as_geojson
from life_circle.models import (
    DEFAULT_TIME_THRESHOLDS,
    POI,
    EvaluationRequest,
    EvaluationResult,
    EvaluationStandard,
    IsochroneRequest,
    IsochroneResult,
    POICategory,
    POIStatistics,
)
from life_circle.poi_merge import merge_pois
from life_circle.scoring import assemble_scores
from life_circle.spatial_filter import filter_in_polygon
from life_circle.standards import DEFAULT_CATEGORIES, DEFAULT_STANDARDS
from life_circle.suggestions import generate_suggestions
from map_apis.amap import to_pois
from map_apis.map_api import MapAPI, MapAPIError
from spatial_apis.spatial_engine import SpatialEngine

logger = logging.getLogger("life_circle")

__all__ = [
    "parse_evaluation_request",
    "parse_isochrone_request",
    "parse_origin",
    "parse_statistics_request",
    "calculate_isochrones",
    "get_standards",
    "get_categories",
    "count_pois",
    "fetch_external_pois",
    "evaluate",
    "evaluate_async",
]

DEFAULT_TIME_THRESHOLD = 15


# -----------------------------------------------------------------------------
# Request parsing
# -----------------------------------------------------------------------------
def _require_float(body: Mapping[str, Any], key: str) -> float:
    value = body.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRequestError(f"{key} is required")
    if isinstance(value, bool):
        raise InvalidRequestError(f"{key} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError(f"{key} must be a number") from exc
    if not math.isfinite(number):
        raise InvalidRequestError(f"{key} must be a finite number")
    return number


def _optional_float(body: Mapping[str, Any], key: str) -> Optional[float]:
    """Parse an optional number. Missing and non-finite values read as None."""
    value = body.get(key)
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError(f"{key} must be a number") from exc
    return number if math.isfinite(number) else None


def _optional_int(body: Mapping[str, Any], key: str) -> Optional[int]:
    value = _optional_float(body, key)
    return int(value) if value is not None else None


def parse_origin(body: Mapping[str, Any]) -> Tuple[float, float]:
    """(lng, lat) from a request body or query; both required, finite and in WGS-84 range."""
    lng = _require_float(body, "lng")
    lat = _require_float(body, "lat")
    if not -180.0 <= lng <= 180.0:
        raise InvalidRequestError("lng must be within [-180, 180]")
    if not -90.0 <= lat <= 90.0:
        raise InvalidRequestError("lat must be within [-90, 90]")
    return lng, lat


def parse_evaluation_request(body: Mapping[str, Any]) -> EvaluationRequest:
    """Origin is mandatory; threshold and speed are defaulted, speed clamped to [3, 7] km/h."""
    lng, lat = parse_origin(body)
    threshold = _optional_int(body, "time_threshold")
    if threshold is None or threshold <= 0:
        threshold = DEFAULT_TIME_THRESHOLD
    return EvaluationRequest(
        lng=lng,
        lat=lat,
        time_threshold=threshold,
        walk_speed=clamp_walk_speed(_optional_float(body, "walk_speed")),
    )


def parse_isochrone_request(body: Mapping[str, Any]) -> IsochroneRequest:
    """Same defaults as evaluation requests, but the walk speed is not clamped."""
    lng, lat = parse_origin(body)
    raw_thresholds = body.get("time_thresholds") or ()
    if not isinstance(raw_thresholds, (list, tuple)):
        raise InvalidRequestError("time_thresholds must be a list of minutes")
    thresholds: List[int] = []
    for value in raw_thresholds:
        if isinstance(value, bool):
            raise InvalidRequestError("time_thresholds must be integers")
        try:
            minutes = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidRequestError("time_thresholds must be integers") from exc
        # Non-finite and non-positive entries are dropped.
        if math.isfinite(minutes) and int(minutes) > 0:
            thresholds.append(int(minutes))
    return IsochroneRequest(
        lng=lng,
        lat=lat,
        time_thresholds=tuple(sorted(set(thresholds))) or DEFAULT_TIME_THRESHOLDS,
        walk_speed=default_walk_speed(_optional_float(body, "walk_speed")),
    )


def parse_statistics_request(params: Mapping[str, Any]) -> Tuple[float, float, Optional[float]]:
    """Query parameters of the statistics endpoint: origin plus optional walk speed."""
    lng, lat = parse_origin(params)
    return lng, lat, _optional_float(params, "walk_speed")


# -----------------------------------------------------------------------------
# Stages
# -----------------------------------------------------------------------------
@contextmanager
def _stage(name: str, deadline: Deadline) -> Iterator[None]:
    """Run a fatal stage: engine failures abort the pipeline with the stage name."""
    deadline.check(name)
    try:
        yield
    except EvaluationError:
        raise
    except SpatialEngineError as exc:
        if deadline.cancelled or deadline.expired():
            raise EvaluationCancelled(name) from exc
        raise EvaluationError(name, exc) from exc


def calculate_isochrones(
    engine: SpatialEngine,
    request: IsochroneRequest,
    deadline: Optional[Deadline] = None,
) -> IsochroneResult:
    deadline = deadline or Deadline()
    thresholds = normalize_thresholds(request.time_thresholds)
    speed = default_walk_speed(request.walk_speed)
    with _stage("isochrone", deadline):
        polygons = engine.compute_isochrones(request.lng, request.lat, thresholds, speed, deadline)
    return IsochroneResult(
        origin=request.origin,
        polygons=tuple(sorted(polygons, key=lambda p: p.minutes)),
    )


def get_standards(engine: SpatialEngine, deadline: Optional[Deadline] = None) -> Tuple[EvaluationStandard, ...]:
    try:
        standards = tuple(engine.fetch_evaluation_standards(deadline))
    except SpatialEngineError as exc:
        logger.warning("Evaluation standard store unavailable, using defaults: %s", exc)
        return DEFAULT_STANDARDS
    if not standards:
        logger.info("Evaluation standard store is empty, using defaults")
        return DEFAULT_STANDARDS
    return standards


def get_categories(engine: SpatialEngine, deadline: Optional[Deadline] = None) -> Tuple[POICategory, ...]:
    try:
        categories = tuple(engine.fetch_categories(deadline))
    except SpatialEngineError as exc:
        logger.warning("POI category store unavailable, using defaults: %s", exc)
        return DEFAULT_CATEGORIES
    if not categories:
        logger.info("POI category store is empty, using defaults")
        return DEFAULT_CATEGORIES
    return categories


def count_pois(
    engine: SpatialEngine,
    lng: float,
    lat: float,
    thresholds: Optional[Sequence[int]] = None,
    walk_speed: Optional[float] = None,
    deadline: Optional[Deadline] = None,
) -> List[POIStatistics]:
    """POI counts per (category, subtype) for each threshold; `count` is the largest-threshold count."""
    deadline = deadline or Deadline()
    speed = clamp_walk_speed(walk_speed)
    minutes_list = sorted(set(normalize_thresholds(thresholds)))
    by_key: Dict[Tuple[str, str], Dict[int, int]] = {}
    with _stage("poi statistics", deadline):
        for minutes in minutes_list:
            for stat in engine.count_pois_by_category(lng, lat, minutes, speed, deadline):
                by_key.setdefault((stat.category, stat.subtype), {})[minutes] = stat.count
    largest = minutes_list[-1]
    return [
        POIStatistics(
            category=category,
            subtype=subtype,
            count=counts.get(largest, 0),
            count_by_time={m: counts.get(m, 0) for m in minutes_list},
        )
        for (category, subtype), counts in sorted(by_key.items())
    ]


def fetch_external_pois(
    map_api: Optional[MapAPI],
    lng: float,
    lat: float,
    radius: int,
    deadline: Optional[Deadline] = None,
) -> List[POI]:
    """Nearby POIs from the external provider; disabled or failing providers yield []."""
    if map_api is None or not map_api.enabled:
        return []
    deadline = deadline or Deadline()
    deadline.check("external search")
    try:
        places = map_api.searchNearby(lng, lat, radius, timeout=deadline.remaining())
    except MapAPIError as exc:
        logger.warning("External POI search via %s failed, continuing with local POIs: %s", map_api.provider, exc)
        return []
    deadline.check("external search")
    return to_pois(places)


# -----------------------------------------------------------------------------
# Orchestration
# -----------------------------------------------------------------------------
def evaluate(
    request: EvaluationRequest,
    *,
    engine: SpatialEngine,
    map_api: Optional[MapAPI] = None,
    deadline: Optional[Deadline] = None,
) -> EvaluationResult:
    """
    Run one full life circle evaluation.

    Scoring, isochrone, local POI and road stages are fatal; the external
    provider and the spatial filter fail open. No partial result is returned
    once a fatal stage fails or the deadline passes.
    """
    deadline = deadline or Deadline()
    speed = clamp_walk_speed(request.walk_speed)
    thresholds = DEFAULT_TIME_THRESHOLDS
    logger.info(
        "Evaluate origin=(%.6f, %.6f) time_threshold=%d walk_speed=%.2f",
        request.lng, request.lat, request.time_threshold, speed,
    )

    # 1) Scores from the aggregation, checked against the standards
    with _stage("evaluate", deadline):
        rows = engine.evaluate_life_circle(request.lng, request.lat, speed, deadline)
    standards = get_standards(engine, deadline)
    scores = assemble_scores(rows, standards)
    suggestions = generate_suggestions(scores.category_scores)

    # 2) Isochrones
    iso_result = calculate_isochrones(
        engine,
        IsochroneRequest(lng=request.lng, lat=request.lat, time_thresholds=thresholds, walk_speed=speed),
        deadline,
    )

    # 3) Local POIs, optionally supplemented by the external provider
    with _stage("query pois", deadline):
        local_pois = list(engine.query_pois_in_isochrone(request.lng, request.lat, request.time_threshold, speed, deadline))

    radius = int(max_distance(speed, thresholds))
    external_pois = fetch_external_pois(map_api, request.lng, request.lat, radius, deadline)
    largest = iso_result.largest()
    if external_pois and largest is not None and largest.geometry:
        searched = len(external_pois)
        external_pois = filter_in_polygon(engine, external_pois, largest.geometry, deadline)
        logger.info("External POI filter: searched %d -> inside isochrone %d", searched, len(external_pois))
    pois = merge_pois(local_pois, external_pois)
    if external_pois:
        logger.info("Merged external POIs: total %d (local %d)", len(pois), len(local_pois))

    # 4) Reachable road network
    with _stage("reachable roads", deadline):
        roads = engine.get_reachable_roads(request.lng, request.lat, max(thresholds), speed, deadline)

    deadline.check("assemble result")
    return EvaluationResult(
        origin=request.origin,
        total_score=scores.total_score,
        grade=scores.grade,
        category_scores=scores.category_scores,
        isochrone=isochrones_as_geojson(iso_result),
        pois=pois_as_geojson(pois),
        roads=roads or None,
        summary=scores.summary,
        suggestions=tuple(suggestions),
        merged_pois=tuple(pois),
    )


async def evaluate_async(
    request: EvaluationRequest,
    *,
    engine: SpatialEngine,
    map_api: Optional[MapAPI] = None,
    timeout: Optional[float] = None,
) -> EvaluationResult:
    """Run `evaluate` in a worker thread; cancelling the awaiting task cancels the pipeline."""
    deadline = Deadline(timeout)
    try:
        return await asyncio.to_thread(evaluate, request, engine=engine, map_api=map_api, deadline=deadline)
    except asyncio.CancelledError:
        deadline.cancel()
        raise

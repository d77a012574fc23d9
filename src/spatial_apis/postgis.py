from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from life_circle.config import DatabaseSettings
from life_circle.context import Deadline
from life_circle.errors import SpatialEngineError
from life_circle.models import (
    Coordinate,
    EvaluationStandard,
    IsochronePolygon,
    POI,
    POICategory,
    POIStatistics,
    POISubType,
    SOURCE_LOCAL,
)
from spatial_apis.spatial_engine import ContainmentPoint, SpatialEngine

logger = logging.getLogger(__name__)

__all__ = ["PostGISEngine"]

_ISOCHRONES_SQL = text(
    """
    SELECT minutes, distance_m, geojson
    FROM calculate_isochrones(:lng, :lat, CAST(:thresholds AS int[]), :walk_speed)
    ORDER BY minutes
    """
)

_POIS_SQL = text(
    """
    SELECT id, COALESCE(name, '') AS name, category, sub_type, lng, lat, distance_m, walk_time_min
    FROM query_pois_in_isochrone(:lng, :lat, :minutes, :walk_speed, NULL)
    """
)

_COUNT_SQL = text(
    """
    SELECT category, sub_type, poi_count
    FROM count_pois_in_isochrone(:lng, :lat, :minutes, :walk_speed)
    """
)

_CONTAINMENT_SQL = text(
    """
    WITH poi_points AS (
        SELECT idx, ST_SetSRID(ST_MakePoint(lng, lat), 4326) AS geom
        FROM unnest(CAST(:idxs AS int[]), CAST(:lngs AS float8[]), CAST(:lats AS float8[])) AS t(idx, lng, lat)
    ),
    isochrone AS (
        SELECT ST_GeomFromGeoJSON(:geojson) AS geom
    )
    SELECT p.idx
    FROM poi_points p, isochrone i
    WHERE ST_Within(p.geom, i.geom)
    """
)

_ROADS_SQL = text("SELECT road_geojson FROM get_reachable_roads(:lng, :lat, :minutes, :walk_speed)")

_STANDARDS_SQL = text(
    """
    SELECT category, sub_type, min_count_5, min_count_10, min_count_15, is_required, base_score
    FROM evaluation_standard
    ORDER BY category, sub_type
    """
)

_CATEGORIES_SQL = text(
    """
    SELECT
        c.code,
        c.name,
        COALESCE(c.description, '') AS description,
        c.weight,
        COALESCE(
            JSON_AGG(
                JSON_BUILD_OBJECT(
                    'code', st.code,
                    'name', st.name,
                    'osm_tag', COALESCE(st.osm_tags[1], '')
                ) ORDER BY st.sort_order
            ) FILTER (WHERE st.code IS NOT NULL),
            '[]'::json
        ) AS sub_types
    FROM poi_category c
    LEFT JOIN poi_sub_type st ON st.category_code = c.code
    GROUP BY c.code, c.name, c.description, c.weight, c.sort_order
    ORDER BY c.sort_order
    """
)

_EVALUATE_SQL = text(
    """
    SELECT total_score, grade, category, category_name, cat_weight,
           category_score, weighted_score, poi_count, details
    FROM evaluate_life_circle(:lng, :lat, :walk_speed)
    """
)


def _load_json(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8")
    if isinstance(value, str):
        return json.loads(value) if value.strip() else None
    return value


class PostGISEngine(SpatialEngine):
    """SpatialEngine backed by the PostGIS/pgRouting functions installed in the life circle database."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "PostGISEngine":
        engine = create_engine(
            settings.dsn,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=0,
            future=True,
        )
        return cls(engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------ #
    # SpatialEngine
    # ------------------------------------------------------------------ #

    def compute_isochrones(self, lng, lat, minute_thresholds, walk_speed, deadline=None) -> List[IsochronePolygon]:
        rows = self._fetch(
            "calculate isochrones",
            _ISOCHRONES_SQL,
            {"lng": lng, "lat": lat, "thresholds": list(minute_thresholds), "walk_speed": walk_speed},
            deadline,
        )
        polygons: List[IsochronePolygon] = []
        for row in rows:
            try:
                geometry = _load_json(row["geojson"])
            except ValueError as exc:
                raise SpatialEngineError(f"parse geojson: {exc}") from exc
            polygons.append(
                IsochronePolygon(
                    minutes=int(row["minutes"]),
                    distance=float(row["distance_m"]),
                    geometry=geometry or {},
                )
            )
        return polygons

    def query_pois_in_isochrone(self, lng, lat, minutes, walk_speed, deadline=None) -> List[POI]:
        rows = self._fetch(
            "query pois",
            _POIS_SQL,
            {"lng": lng, "lat": lat, "minutes": minutes, "walk_speed": walk_speed},
            deadline,
        )
        return [
            POI(
                id=int(row["id"]) if row["id"] is not None else None,
                name=row["name"],
                category=row["category"],
                subtype=row["sub_type"],
                coordinate=Coordinate(float(row["lng"]), float(row["lat"])),
                source=SOURCE_LOCAL,
            )
            for row in rows
        ]

    def count_pois_by_category(self, lng, lat, minutes, walk_speed, deadline=None) -> List[POIStatistics]:
        rows = self._fetch(
            "count pois",
            _COUNT_SQL,
            {"lng": lng, "lat": lat, "minutes": minutes, "walk_speed": walk_speed},
            deadline,
        )
        return [
            POIStatistics(
                category=row["category"],
                subtype=row["sub_type"],
                count=int(row["poi_count"]),
                count_by_time={minutes: int(row["poi_count"])},
            )
            for row in rows
        ]

    def filter_points_in_polygon(
        self,
        points: Sequence[ContainmentPoint],
        polygon: Mapping[str, Any],
        deadline: Optional[Deadline] = None,
    ) -> Set[int]:
        if not points:
            return set()
        params = {
            "idxs": [p.idx for p in points],
            "lngs": [p.lng for p in points],
            "lats": [p.lat for p in points],
            "geojson": json.dumps(polygon),
        }
        rows = self._fetch("filter points in polygon", _CONTAINMENT_SQL, params, deadline)
        return {int(row["idx"]) for row in rows}

    def get_reachable_roads(self, lng, lat, minutes, walk_speed, deadline=None) -> Optional[Mapping[str, Any]]:
        rows = self._fetch(
            "get reachable roads",
            _ROADS_SQL,
            {"lng": lng, "lat": lat, "minutes": minutes, "walk_speed": walk_speed},
            deadline,
        )
        if not rows:
            return None
        try:
            return _load_json(rows[0]["road_geojson"])
        except ValueError as exc:
            raise SpatialEngineError(f"parse road geojson: {exc}") from exc

    def fetch_evaluation_standards(self, deadline: Optional[Deadline] = None) -> List[EvaluationStandard]:
        rows = self._fetch("fetch evaluation standards", _STANDARDS_SQL, {}, deadline)
        return [
            EvaluationStandard(
                category=row["category"],
                subtype=row["sub_type"],
                min_count_5=int(row["min_count_5"]),
                min_count_10=int(row["min_count_10"]),
                min_count_15=int(row["min_count_15"]),
                required=bool(row["is_required"]),
                base_score=float(row["base_score"]),
            )
            for row in rows
        ]

    def fetch_categories(self, deadline: Optional[Deadline] = None) -> List[POICategory]:
        rows = self._fetch("fetch categories", _CATEGORIES_SQL, {}, deadline)
        categories: List[POICategory] = []
        for row in rows:
            try:
                sub_types = _load_json(row["sub_types"]) or []
            except ValueError:
                logger.warning("Category %s has malformed sub_types payload", row["code"])
                sub_types = []
            categories.append(
                POICategory(
                    code=row["code"],
                    name=row["name"],
                    description=row["description"],
                    weight=float(row["weight"]),
                    sub_types=tuple(
                        POISubType(code=s.get("code", ""), name=s.get("name", ""), osm_tag=s.get("osm_tag", ""))
                        for s in sub_types
                        if isinstance(s, Mapping)
                    ),
                )
            )
        return categories

    def evaluate_life_circle(self, lng, lat, walk_speed, deadline=None) -> List[Dict[str, Any]]:
        return self._fetch(
            "evaluate",
            _EVALUATE_SQL,
            {"lng": lng, "lat": lat, "walk_speed": walk_speed},
            deadline,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _fetch(
        self,
        operation: str,
        statement: Any,
        params: Mapping[str, Any],
        deadline: Optional[Deadline],
    ) -> List[Dict[str, Any]]:
        if deadline is not None:
            deadline.check(operation)
        try:
            with self.engine.connect() as conn:
                timeout_ms = self._statement_timeout_ms(deadline)
                if timeout_ms is not None:
                    conn.execute(
                        text("SELECT set_config('statement_timeout', :ms, true)"),
                        {"ms": str(timeout_ms)},
                    )
                result = conn.execute(statement, dict(params))
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as exc:
            logger.error("PostGIS %s failed: %s", operation, exc)
            raise SpatialEngineError(f"{operation}: {exc}") from exc

    @staticmethod
    def _statement_timeout_ms(deadline: Optional[Deadline]) -> Optional[int]:
        if deadline is None:
            return None
        remaining = deadline.remaining()
        if remaining is None:
            return None
        return max(1, int(remaining * 1000))

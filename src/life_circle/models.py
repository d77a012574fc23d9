from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

__all__ = [
    "SOURCE_LOCAL",
    "SOURCE_EXTERNAL",
    "DEFAULT_TIME_THRESHOLDS",
    "DEFAULT_WALK_SPEED",
    "Coordinate",
    "POI",
    "POISubType",
    "POICategory",
    "POIStatistics",
    "EvaluationStandard",
    "SubTypeScore",
    "CategoryScore",
    "IsochroneRequest",
    "IsochronePolygon",
    "IsochroneResult",
    "EvaluationRequest",
    "EvaluationResult",
]

SOURCE_LOCAL = "local"
SOURCE_EXTERNAL = "external"

DEFAULT_TIME_THRESHOLDS: Tuple[int, ...] = (5, 10, 15)
DEFAULT_WALK_SPEED = 5.0


@dataclass(frozen=True)
class Coordinate:
    """WGS-84 (lng, lat) pair in degrees."""

    lng: float
    lat: float

    def as_list(self) -> List[float]:
        return [self.lng, self.lat]


@dataclass(frozen=True)
class POI:
    name: str
    category: str
    subtype: str
    coordinate: Coordinate
    id: Optional[int] = None
    address: str = ""
    tags: Tuple[str, ...] = ()
    source: str = SOURCE_LOCAL

    @property
    def lng(self) -> float:
        return self.coordinate.lng

    @property
    def lat(self) -> float:
        return self.coordinate.lat


@dataclass(frozen=True)
class POISubType:
    code: str
    name: str
    osm_tag: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "name": self.name, "osm_tag": self.osm_tag}


@dataclass(frozen=True)
class POICategory:
    code: str
    name: str
    description: str
    weight: float
    sub_types: Tuple[POISubType, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "weight": self.weight,
            "sub_types": [sub.to_dict() for sub in self.sub_types],
        }


@dataclass(frozen=True)
class POIStatistics:
    category: str
    subtype: str
    count: int
    count_by_time: Mapping[int, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "sub_type": self.subtype,
            "count": self.count,
            "count_by_time": {str(k): v for k, v in sorted(self.count_by_time.items())},
        }


@dataclass(frozen=True)
class EvaluationStandard:
    """Planning standard row. Reference: GB 50180-2018 and local life circle guidelines."""

    category: str
    subtype: str
    min_count_5: int
    min_count_10: int
    min_count_15: int
    required: bool
    base_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "sub_type": self.subtype,
            "min_count_5": self.min_count_5,
            "min_count_10": self.min_count_10,
            "min_count_15": self.min_count_15,
            "required": self.required,
            "base_score": self.base_score,
        }


@dataclass(frozen=True)
class SubTypeScore:
    subtype: str
    name: str
    count: int
    required: int
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sub_type": self.subtype,
            "name": self.name,
            "count": self.count,
            "required": self.required,
            "score": self.score,
        }


@dataclass(frozen=True)
class CategoryScore:
    category: str
    name: str
    score: float
    weight: float
    weighted_score: float
    poi_count: int
    has_required: bool = False
    details: Tuple[SubTypeScore, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "name": self.name,
            "score": self.score,
            "weight": self.weight,
            "weighted_score": self.weighted_score,
            "poi_count": self.poi_count,
            "has_required": self.has_required,
            "details": [detail.to_dict() for detail in self.details],
        }


@dataclass(frozen=True)
class IsochroneRequest:
    lng: float
    lat: float
    time_thresholds: Tuple[int, ...] = DEFAULT_TIME_THRESHOLDS
    walk_speed: float = DEFAULT_WALK_SPEED

    @property
    def origin(self) -> Coordinate:
        return Coordinate(self.lng, self.lat)


@dataclass(frozen=True)
class IsochronePolygon:
    minutes: int
    distance: float
    geometry: Mapping[str, Any]


@dataclass(frozen=True)
class IsochroneResult:
    origin: Coordinate
    polygons: Tuple[IsochronePolygon, ...]

    def polygon_for(self, minutes: int) -> Optional[IsochronePolygon]:
        for polygon in self.polygons:
            if polygon.minutes == minutes:
                return polygon
        return None

    def largest(self) -> Optional[IsochronePolygon]:
        if not self.polygons:
            return None
        return max(self.polygons, key=lambda p: p.minutes)


@dataclass(frozen=True)
class EvaluationRequest:
    lng: float
    lat: float
    time_threshold: int = 15
    walk_speed: float = DEFAULT_WALK_SPEED

    @property
    def origin(self) -> Coordinate:
        return Coordinate(self.lng, self.lat)


@dataclass(frozen=True)
class EvaluationResult:
    origin: Coordinate
    total_score: float
    grade: str
    category_scores: Tuple[CategoryScore, ...]
    isochrone: Mapping[str, Any]
    pois: Mapping[str, Any]
    summary: str
    suggestions: Tuple[str, ...]
    roads: Optional[Any] = None
    merged_pois: Tuple[POI, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "origin": self.origin.as_list(),
            "total_score": self.total_score,
            "grade": self.grade,
            "category_scores": [score.to_dict() for score in self.category_scores],
            "isochrone": self.isochrone,
            "pois": self.pois,
            "summary": self.summary,
            "suggestions": list(self.suggestions),
        }
        if self.roads is not None:
            payload["roads"] = self.roads
        return payload

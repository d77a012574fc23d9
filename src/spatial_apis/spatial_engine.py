from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Set

from life_circle.context import Deadline
from life_circle.models import (
    EvaluationStandard,
    IsochronePolygon,
    POI,
    POICategory,
    POIStatistics,
)

__all__ = ["ContainmentPoint", "SpatialEngine"]


@dataclass(frozen=True)
class ContainmentPoint:
    idx: int
    lng: float
    lat: float


class SpatialEngine(ABC):
    """
    Contract for the geospatial backend the evaluation pipeline delegates to.

    Implementations own isochrone geometry, containment tests, the local POI
    catalogue, the evaluation standard store and the per-category score
    aggregation. Every method raises SpatialEngineError on failure and
    honours the optional deadline.
    """

    @abstractmethod
    def compute_isochrones(
        self,
        lng: float,
        lat: float,
        minute_thresholds: Sequence[int],
        walk_speed: float,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[IsochronePolygon]:
        """One polygon per threshold, ascending by minutes."""

    @abstractmethod
    def query_pois_in_isochrone(
        self,
        lng: float,
        lat: float,
        minutes: int,
        walk_speed: float,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[POI]:
        """Catalogued POIs reachable within `minutes`."""

    @abstractmethod
    def count_pois_by_category(
        self,
        lng: float,
        lat: float,
        minutes: int,
        walk_speed: float,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[POIStatistics]:
        """POI counts per (category, subtype) within `minutes`."""

    @abstractmethod
    def filter_points_in_polygon(
        self,
        points: Sequence[ContainmentPoint],
        polygon: Mapping[str, Any],
        deadline: Optional[Deadline] = None,
    ) -> Set[int]:
        """Indices of `points` lying inside the GeoJSON `polygon`, in one round trip."""

    @abstractmethod
    def get_reachable_roads(
        self,
        lng: float,
        lat: float,
        minutes: int,
        walk_speed: float,
        deadline: Optional[Deadline] = None,
    ) -> Optional[Mapping[str, Any]]:
        """Reachable road network as GeoJSON, or None when there is none."""

    @abstractmethod
    def fetch_evaluation_standards(self, deadline: Optional[Deadline] = None) -> Sequence[EvaluationStandard]:
        """Stored standard rows; empty when the store has none."""

    @abstractmethod
    def fetch_categories(self, deadline: Optional[Deadline] = None) -> Sequence[POICategory]:
        """Stored POI category taxonomy; empty when the store has none."""

    @abstractmethod
    def evaluate_life_circle(
        self,
        lng: float,
        lat: float,
        walk_speed: float,
        deadline: Optional[Deadline] = None,
    ) -> Sequence[Mapping[str, Any]]:
        """
        Per-category aggregation rows.

        Each row carries total_score, grade, category, category_name,
        cat_weight, category_score, weighted_score, poi_count and a JSON
        details payload of per-subtype scores.
        """

"""
Merging of the local POI catalogue with externally sourced POIs.

Two records are treated as the same facility when they share a rounded
coordinate and name, or when they lie within DUPLICATE_RADIUS_M of each other
and one name contains the other. The containment test tolerates branch-name
variants ("Hospital" vs "City Hospital") at the cost of occasional false
positives on short common substrings.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, List, Set, Tuple

from life_circle.models import POI, SOURCE_EXTERNAL, SOURCE_LOCAL

__all__ = [
    "DUPLICATE_RADIUS_M",
    "METERS_PER_DEGREE_LAT",
    "METERS_PER_DEGREE_LNG",
    "planar_distance_m",
    "merge_key",
    "is_near_duplicate",
    "merge_pois",
]

DUPLICATE_RADIUS_M = 50.0

# Equirectangular constants calibrated for ~30°N (Hangzhou). Only valid for
# neighbourhood-sized extents near that latitude.
METERS_PER_DEGREE_LAT = 111000.0
METERS_PER_DEGREE_LNG = 90000.0

MergeKey = Tuple[float, float, str]


def planar_distance_m(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    d_lat = (lat2 - lat1) * METERS_PER_DEGREE_LAT
    d_lng = (lng2 - lng1) * METERS_PER_DEGREE_LNG
    return math.sqrt(d_lat * d_lat + d_lng * d_lng)


def merge_key(poi: POI) -> MergeKey:
    return round(poi.lng, 5), round(poi.lat, 5), poi.name


def is_near_duplicate(candidate: POI, existing: POI) -> bool:
    if planar_distance_m(candidate.lng, candidate.lat, existing.lng, existing.lat) >= DUPLICATE_RADIUS_M:
        return False
    return candidate.name in existing.name or existing.name in candidate.name


def merge_pois(local: Iterable[POI], external: Iterable[POI]) -> List[POI]:
    """
    Combine local and external POIs into one list without near-duplicates.

    Local records always survive and are tagged "local". External records are
    kept in input order, tagged "external", unless they duplicate a local
    record or an external record accepted earlier (by exact key only).
    """
    merged: List[POI] = [replace(poi, source=SOURCE_LOCAL) for poi in local]
    seen: Set[MergeKey] = {merge_key(poi) for poi in merged}
    local_count = len(merged)

    for candidate in external:
        key = merge_key(candidate)
        if key in seen:
            continue
        if any(is_near_duplicate(candidate, merged[i]) for i in range(local_count)):
            continue
        merged.append(replace(candidate, source=SOURCE_EXTERNAL))
        seen.add(key)

    return merged

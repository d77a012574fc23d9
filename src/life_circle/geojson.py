"""Minimal RFC 7946 builders for the isochrone and POI layers."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from life_circle.models import Coordinate, IsochroneResult, POI

__all__ = [
    "feature",
    "point_feature",
    "feature_collection",
    "isochrones_as_geojson",
    "pois_as_geojson",
]


def feature(geometry: Mapping[str, Any], properties: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return {"type": "Feature", "geometry": dict(geometry), "properties": dict(properties or {})}


def point_feature(coordinate: Coordinate, properties: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return feature({"type": "Point", "coordinates": coordinate.as_list()}, properties)


def feature_collection(features: Iterable[Mapping[str, Any]] = ()) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def isochrones_as_geojson(result: IsochroneResult) -> Dict[str, Any]:
    """Polygons largest-first so smaller rings render on top, followed by the origin point."""
    features: List[Dict[str, Any]] = []
    for polygon in sorted(result.polygons, key=lambda p: p.minutes, reverse=True):
        features.append(
            feature(
                polygon.geometry,
                {"minutes": polygon.minutes, "distance": polygon.distance, "type": "isochrone"},
            )
        )
    features.append(point_feature(result.origin, {"type": "origin"}))
    return feature_collection(features)


def pois_as_geojson(pois: Iterable[POI]) -> Dict[str, Any]:
    return feature_collection(
        point_feature(
            poi.coordinate,
            {
                "id": poi.id,
                "name": poi.name,
                "category": poi.category,
                "sub_type": poi.subtype,
                "type": "poi",
                "source": poi.source,
            },
        )
        for poi in pois
    )

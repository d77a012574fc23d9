from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence

from life_circle.context import Deadline
from life_circle.errors import SpatialEngineError
from life_circle.models import POI
from spatial_apis.spatial_engine import ContainmentPoint, SpatialEngine

logger = logging.getLogger(__name__)

__all__ = ["filter_in_polygon"]


def filter_in_polygon(
    engine: SpatialEngine,
    pois: Sequence[POI],
    polygon: Optional[Mapping[str, Any]],
    deadline: Optional[Deadline] = None,
) -> List[POI]:
    """
    Keep only the POIs the spatial engine places inside `polygon`.

    All candidates go out in a single containment query. If the engine
    fails the candidates are returned unfiltered (fail-open).
    """
    if not pois or not polygon:
        return list(pois)

    if deadline is not None:
        deadline.check("spatial filter")
    points = [ContainmentPoint(idx=i, lng=poi.lng, lat=poi.lat) for i, poi in enumerate(pois)]
    try:
        inside = engine.filter_points_in_polygon(points, polygon, deadline)
    except SpatialEngineError as exc:
        if deadline is not None:
            deadline.check("spatial filter")
        logger.warning("Batch POI containment query failed, keeping %d unfiltered candidates: %s", len(pois), exc)
        return list(pois)

    return [poi for i, poi in enumerate(pois) if i in inside]

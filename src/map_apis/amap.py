from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from life_circle.models import POI, SOURCE_EXTERNAL, Coordinate
from map_apis.data_types import ExternalPlace, parse_location
from map_apis.map_api import MapAPI, MapAPIError
from map_apis.type_projection import AMAP_SEARCH_TYPES, map_external_type

logger = logging.getLogger(__name__)

_LOG_DIR = Path("logs")
_LOG_FILE = _LOG_DIR / "amap.log"


def _ensure_amap_file_logging() -> None:
    """Attach a file handler for persistent AMap logging if missing."""
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and getattr(handler, "baseFilename", "") == str(_LOG_FILE.resolve()):
            break
    else:
        _LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(_LOG_FILE, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    if logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)


def _serialize_for_log(payload: Mapping[str, Any]) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except TypeError:
        return repr(payload)


def _log_function_call(name: str, payload: Mapping[str, Any]) -> None:
    logger.info("AMap.%s input=%s", name, _serialize_for_log(payload))


def to_poi(place: ExternalPlace) -> Optional[POI]:
    """Convert a provider record into an external POI, or None if it has no usable location."""
    coords = parse_location(place.location)
    if coords is None:
        return None
    category, sub_type = map_external_type(place.type_code)
    lng, lat = coords
    return POI(
        name=place.name,
        category=category,
        subtype=sub_type,
        coordinate=Coordinate(lng, lat),
        address=place.address,
        source=SOURCE_EXTERNAL,
    )


def to_pois(places: Sequence[ExternalPlace]) -> List[POI]:
    pois: List[POI] = []
    for place in places:
        poi = to_poi(place)
        if poi is None:
            logger.warning("AMap place skipped, unparseable location name=%s location=%r", place.name, place.location)
            continue
        pois.append(poi)
    return pois


class AMap(MapAPI):
    """Concrete MapAPI adapter backed by the AMap (Gaode) place-around REST service."""

    BASE_URL = "https://restapi.amap.com"
    PLACE_AROUND_PATH = "/v3/place/around"
    PAGE_SIZE = 25
    MAX_RADIUS = 50000

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        enabled: bool = True,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        num_pages: int = 2,
        file_logging: bool = True,
    ) -> None:
        self.api_key = api_key or ""
        self._enabled = enabled
        self.session = session or requests.Session()
        self.timeout = timeout
        self.num_pages = max(1, num_pages)
        if file_logging:
            _ensure_amap_file_logging()
        super().__init__("amap")

    @property
    def enabled(self) -> bool:
        return self._enabled and bool(self.api_key)

    def searchNearby(
        self,
        lng: float,
        lat: float,
        radius: int,
        *,
        types: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ) -> Sequence[ExternalPlace]:
        if not self.enabled:
            return []
        search_types = list(types) if types else list(AMAP_SEARCH_TYPES)
        _log_function_call(
            "searchNearby",
            {"lng": lng, "lat": lat, "radius": radius, "types": search_types, "num_pages": self.num_pages},
        )

        base_params: Dict[str, Any] = {
            "location": f"{lng:.6f},{lat:.6f}",
            "radius": max(1, min(int(radius), self.MAX_RADIUS)),
            "types": "|".join(search_types),
            "offset": self.PAGE_SIZE,
            "extensions": "base",
            "output": "JSON",
        }

        results: List[ExternalPlace] = []
        seen_ids: set[str] = set()
        for page in range(1, self.num_pages + 1):
            payload = self._request(self.PLACE_AROUND_PATH, {**base_params, "page": page}, timeout)
            pois = payload.get("pois") or []
            if not isinstance(pois, list):
                raise MapAPIError(f"AMap returned malformed pois field: {type(pois).__name__}")
            for record in pois:
                if not isinstance(record, Mapping):
                    continue
                place = ExternalPlace.from_record(record)
                if place.provider_id:
                    if place.provider_id in seen_ids:
                        continue
                    seen_ids.add(place.provider_id)
                results.append(place)
            if len(pois) < self.PAGE_SIZE:
                break

        logger.info("AMap.searchNearby returned %d places", len(results))
        return results

    # --------------------------------------------------------------------- #
    # Internal helpers
    # --------------------------------------------------------------------- #

    def _request(self, path: str, params: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        merged_params = {"key": self.api_key, **params}
        safe_params = {k: v for k, v in merged_params.items() if k != "key"}
        logger.info("AMap request path=%s params=%s", path, safe_params)
        if timeout is not None:
            timeout = max(0.001, min(timeout, self.timeout))
        try:
            response = self.session.get(
                f"{self.BASE_URL}{path}", params=merged_params, timeout=timeout or self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("AMap HTTP error path=%s params=%s error=%s", path, safe_params, exc)
            raise MapAPIError(f"AMap request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error(
                "AMap JSON decode error path=%s params=%s error=%s body=%s",
                path,
                safe_params,
                exc,
                response.text,
            )
            raise MapAPIError(f"AMap response is not JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise MapAPIError("AMap response is not a JSON object")

        if payload.get("status") != "1":
            info = payload.get("info") or "unknown error"
            logger.error(
                "AMap API error path=%s params=%s info=%s payload=%s",
                path,
                safe_params,
                info,
                payload,
            )
            raise MapAPIError(f"AMap API error: {info}")
        return payload

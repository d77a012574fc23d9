from __future__ import annotations

import pytest
import requests

from fakes import StubResponse, StubSession
from life_circle.models import SOURCE_EXTERNAL
from map_apis.amap import AMap, to_poi, to_pois
from map_apis.data_types import ExternalPlace, flexible_string, parse_location
from map_apis.map_api import MapAPIError


def _record(i: int, **overrides):
    record = {
        "id": f"B0{i:04d}",
        "name": f"Place {i}",
        "typecode": "090100",
        "location": f"120.{150 + i},30.280",
        "address": f"{i} West Lake Road",
    }
    record.update(overrides)
    return record


def _ok(records, count=None):
    return StubResponse({"status": "1", "info": "OK", "count": str(count or len(records)), "pois": records})


def _client(session, **kwargs) -> AMap:
    kwargs.setdefault("num_pages", 2)
    return AMap("test-key", session=session, file_logging=False, **kwargs)


def test_search_nearby_parses_places() -> None:
    session = StubSession(_ok([_record(1), _record(2, address=[])]))
    client = _client(session)
    places = client.searchNearby(120.15, 30.28, 1250)

    assert [p.name for p in places] == ["Place 1", "Place 2"]
    assert places[1].address == ""
    assert places[0].type_code == "090100"
    # A short first page ends pagination.
    assert len(session.calls) == 1
    params = session.calls[0]["params"]
    assert params["key"] == "test-key"
    assert params["location"] == "120.150000,30.280000"
    assert params["radius"] == 1250
    assert params["page"] == 1
    assert "090000" in params["types"].split("|")
    assert session.calls[0]["url"].endswith("/v3/place/around")


def test_pagination_and_dedupe() -> None:
    first = [_record(i) for i in range(AMap.PAGE_SIZE)]
    second = [_record(0), _record(99)]
    session = StubSession(_ok(first), _ok(second))
    places = _client(session).searchNearby(120.15, 30.28, 500)
    assert len(places) == AMap.PAGE_SIZE + 1
    assert [c["params"]["page"] for c in session.calls] == [1, 2]


def test_radius_is_clamped() -> None:
    session = StubSession(_ok([]))
    _client(session).searchNearby(120.15, 30.28, 10**7)
    assert session.calls[0]["params"]["radius"] == AMap.MAX_RADIUS


def test_status_error_raises() -> None:
    session = StubSession(StubResponse({"status": "0", "info": "INVALID_USER_KEY"}))
    with pytest.raises(MapAPIError, match="INVALID_USER_KEY"):
        _client(session).searchNearby(120.15, 30.28, 1000)


def test_http_error_raises() -> None:
    session = StubSession(StubResponse({}, status_code=503))
    with pytest.raises(MapAPIError):
        _client(session).searchNearby(120.15, 30.28, 1000)


def test_transport_error_raises() -> None:
    session = StubSession(requests.ConnectionError("boom"))
    with pytest.raises(MapAPIError, match="boom"):
        _client(session).searchNearby(120.15, 30.28, 1000)


def test_non_json_body_raises() -> None:
    session = StubSession(StubResponse(text="<html>"))
    with pytest.raises(MapAPIError):
        _client(session).searchNearby(120.15, 30.28, 1000)


def test_timeout_capped_by_client_timeout() -> None:
    session = StubSession(_ok([]), _ok([]))
    client = _client(session, timeout=4.0)
    client.searchNearby(120.15, 30.28, 1000, timeout=1.5)
    client.searchNearby(120.15, 30.28, 1000, timeout=60.0)
    assert [c["timeout"] for c in session.calls] == [1.5, 4.0]


@pytest.mark.parametrize("key, enabled", [("", True), ("test-key", False)])
def test_disabled_client_returns_nothing(key, enabled) -> None:
    session = StubSession()
    client = AMap(key, enabled=enabled, session=session, file_logging=False)
    assert client.enabled is False
    assert client.searchNearby(120.15, 30.28, 1000) == []
    assert session.calls == []


def test_api_key_never_logged(caplog) -> None:
    caplog.set_level("INFO", logger="map_apis.amap")
    session = StubSession(StubResponse({"status": "0", "info": "DAILY_QUERY_OVER_LIMIT"}))
    with pytest.raises(MapAPIError):
        _client(session).searchNearby(120.15, 30.28, 1000)
    assert "test-key" not in caplog.text


def test_flexible_string_and_location() -> None:
    assert flexible_string("x") == "x"
    assert flexible_string(["a", "b"]) == "a"
    assert flexible_string([]) == ""
    assert flexible_string(None) == ""
    assert parse_location("120.1,30.2") == (120.1, 30.2)
    assert parse_location("bad") is None
    assert parse_location("a,b") is None


def test_to_poi_maps_type_and_source() -> None:
    poi = to_poi(ExternalPlace(name="Pharmacy", type_code="090500", location="120.1,30.1"))
    assert poi is not None
    assert (poi.category, poi.subtype) == ("medical", "pharmacy")
    assert poi.source == SOURCE_EXTERNAL
    assert poi.id is None


def test_to_pois_skips_bad_locations() -> None:
    places = [
        ExternalPlace(name="Good", type_code="150200", location="120.1,30.1"),
        ExternalPlace(name="Bad", type_code="150200", location=""),
    ]
    assert [p.name for p in to_pois(places)] == ["Good"]

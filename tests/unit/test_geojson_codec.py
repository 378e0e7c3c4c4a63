from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.adapters.http.geojson_codec import (
    classify_route_payload,
    parse_category_list,
    parse_obstacles,
    parse_status,
    route_body,
)
from src.domain.models import (
    GeoPoint,
    Obstacle,
    RouteBusy,
    RouteInvalid,
    RouteReady,
    RouteUnavailable,
    ServerStatus,
    Waypoint,
)


def point_feature(props: dict, coords=(103.8, 1.3)) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": list(coords)},
        "properties": props,
    }


@pytest.mark.unit
@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ("ready", ServerStatus.READY),
        (" Ready\n", ServerStatus.READY),
        ("wait", ServerStatus.WAIT),
        ("booting", ServerStatus.UNKNOWN),
    ],
)
def test_parse_status(payload: str, expected: ServerStatus) -> None:
    assert parse_status(payload) is expected


@pytest.mark.unit
def test_parse_obstacles_reads_alternate_radius_keys_and_names() -> None:
    payload = {
        "type": "FeatureCollection",
        "features": [
            point_feature({"name": "A", "radius (m)": "120"}),
            point_feature({"id": "B", "distance_meters": 80, "description": "undefined"}),
            point_feature({}),
            {"type": "Feature", "geometry": {"type": "LineString", "coordinates": []}},
        ],
    }

    obstacles = parse_obstacles(payload)

    assert [o.name for o in obstacles] == ["A", "B", "2"]
    assert obstacles[0].radius_m == 120.0
    assert obstacles[0].location == GeoPoint(lat=1.3, lon=103.8)
    assert obstacles[1].radius_m == 80.0
    assert obstacles[1].description == ""
    assert obstacles[2].radius_m is None


@pytest.mark.unit
def test_parse_obstacles_empty_and_bad_shape() -> None:
    assert parse_obstacles(None) == ()
    assert parse_obstacles("") == ()
    with pytest.raises(ValidationError):
        parse_obstacles({"type": "Feature"})


@pytest.mark.unit
def test_route_body_wire_shape() -> None:
    start = Waypoint(location=GeoPoint(lat=1.0, lon=103.0), description="Start")
    end = Waypoint(location=GeoPoint(lat=1.1, lon=103.1), description="End")
    ob = Obstacle(name="X", location=GeoPoint(lat=1.05, lon=103.05), radius_m=50.0)

    body = route_body(start=start, end=end, obstacles=(ob,))

    assert body["startPt"] == {"long": 103.0, "lat": 1.0, "description": "Start"}
    assert body["endPt"]["lat"] == 1.1
    [feature] = body["blockages"]["features"]
    assert feature["geometry"]["coordinates"] == [103.05, 1.05]
    assert feature["properties"] == {"name": "X", "radius": 50.0, "description": ""}


@pytest.mark.unit
def test_classify_route_payload() -> None:
    line = {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
        "properties": {},
    }
    stub = {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [[0, 0]]},
        "properties": {},
    }

    assert isinstance(classify_route_payload("wait"), RouteBusy)
    assert isinstance(classify_route_payload("<html>"), RouteInvalid)
    assert isinstance(classify_route_payload({"features": []}), RouteInvalid)
    assert isinstance(
        classify_route_payload({"type": "FeatureCollection", "features": [stub]}),
        RouteUnavailable,
    )
    ready = classify_route_payload({"type": "FeatureCollection", "features": [line]})
    assert isinstance(ready, RouteReady)
    assert ready.path.line_count == 1


@pytest.mark.unit
def test_parse_category_list_normalises_and_dedupes() -> None:
    assert parse_category_list([" Motorway", "motorway", "", None, "primary"]) == (
        "motorway",
        "primary",
    )
    assert parse_category_list("wait") == ()

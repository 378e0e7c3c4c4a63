from __future__ import annotations

import pytest
from src.domain.models.geo import GeoPoint


def test_geo_point_accepts_valid_coordinates() -> None:
    p = GeoPoint(lat=28.1234, lon=-15.4321)
    assert p.lat == 28.1234
    assert p.lon == -15.4321


@pytest.mark.parametrize(
    ("lat", "lon"),
    [
        (-90.0001, 0.0),
        (90.0001, 0.0),
        (0.0, -180.0001),
        (0.0, 180.0001),
    ],
)
def test_geo_point_rejects_out_of_range_coordinates(lat: float, lon: float) -> None:
    with pytest.raises(ValueError):
        GeoPoint(lat=lat, lon=lon)


def test_geo_point_rejects_non_finite_coordinates() -> None:
    with pytest.raises(ValueError):
        GeoPoint(lat=float("nan"), lon=0.0)


def test_geo_point_round_trips_geojson_position() -> None:
    p = GeoPoint.from_lon_lat([103.85, 1.3, 12.0])
    assert (p.lat, p.lon) == (1.3, 103.85)
    assert p.to_lon_lat() == [103.85, 1.3]


def test_geo_point_needs_two_coordinates() -> None:
    with pytest.raises(ValueError):
        GeoPoint.from_lon_lat([103.85])

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            raise ValueError(f"Coordinates must be finite: {self.lat}, {self.lon}")
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")

    @staticmethod
    def from_lon_lat(coordinates: Sequence[Any]) -> "GeoPoint":
        """Build from a GeoJSON position ``[lon, lat, ...]``."""

        if len(coordinates) < 2:
            raise ValueError(f"Position needs two coordinates: {coordinates!r}")
        return GeoPoint(lat=float(coordinates[1]), lon=float(coordinates[0]))

    def to_lon_lat(self) -> list[float]:
        return [self.lon, self.lat]

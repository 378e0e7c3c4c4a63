from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from .geo import GeoPoint
from .obstacle import ObstacleSnapshot
from .transport import TransportMode


class RouteState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    BACKOFF_WAIT = "backoff_wait"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Waypoint:
    location: GeoPoint
    description: str = ""


@dataclass(frozen=True, slots=True)
class RouteRequest:
    id: int
    start: Waypoint
    end: Waypoint
    obstacles: ObstacleSnapshot
    reason: str = "ui"
    transport_mode: TransportMode = TransportMode.CAR


@dataclass(frozen=True, slots=True)
class RoutePath:
    """Route geometry as returned by the engine (GeoJSON features)."""

    features: tuple[Mapping[str, Any], ...] = ()

    @property
    def line_count(self) -> int:
        return sum(1 for f in self.features if _is_route_line(f))

    def to_geojson(self) -> dict[str, Any]:
        return {"type": "FeatureCollection", "features": [dict(f) for f in self.features]}


def _is_route_line(feature: Any) -> bool:
    if not isinstance(feature, Mapping) or feature.get("type") != "Feature":
        return False
    geometry = feature.get("geometry")
    if not isinstance(geometry, Mapping) or geometry.get("type") != "LineString":
        return False
    coords = geometry.get("coordinates")
    return isinstance(coords, list) and len(coords) > 1


# Tagged reply from the route endpoint.


@dataclass(frozen=True, slots=True)
class RouteReady:
    path: RoutePath


@dataclass(frozen=True, slots=True)
class RouteBusy:
    """The engine answered "wait": not ready yet, try again later."""


@dataclass(frozen=True, slots=True)
class RouteInvalid:
    detail: str = ""


@dataclass(frozen=True, slots=True)
class RouteUnavailable:
    """Well-formed reply without any route line: no path exists."""

    path: RoutePath = field(default_factory=RoutePath)


RouteOutcome = RouteReady | RouteBusy | RouteInvalid | RouteUnavailable


@dataclass(frozen=True, slots=True)
class RetryState:
    attempt_count: int = 0
    max_attempts: int = 5
    next_delay_s: float | None = None
    last_reason: str | None = None
    last_override: ObstacleSnapshot | None = None

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts


@dataclass(frozen=True, slots=True)
class RouteSnapshot:
    state: RouteState = RouteState.IDLE
    route: RoutePath | None = None
    request_id: int = 0
    in_flight: bool = False
    retry: RetryState = field(default_factory=RetryState)
    start: Waypoint | None = None
    end: Waypoint | None = None
    has_last_request: bool = False

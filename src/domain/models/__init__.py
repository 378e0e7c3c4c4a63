from .category import CategoryLayer, LayerSnapshot
from .geo import GeoPoint
from .notice import Notice, Tone
from .obstacle import Obstacle, ObstacleDraft, ObstacleMeta, ObstacleSnapshot
from .route import (
    RetryState,
    RouteBusy,
    RouteInvalid,
    RouteOutcome,
    RoutePath,
    RouteReady,
    RouteRequest,
    RouteSnapshot,
    RouteState,
    RouteUnavailable,
    Waypoint,
)
from .status import ServerStatus
from .transport import TransportMode

__all__ = [
    "CategoryLayer",
    "GeoPoint",
    "LayerSnapshot",
    "Notice",
    "Obstacle",
    "ObstacleDraft",
    "ObstacleMeta",
    "ObstacleSnapshot",
    "RetryState",
    "RouteBusy",
    "RouteInvalid",
    "RouteOutcome",
    "RoutePath",
    "RouteReady",
    "RouteRequest",
    "RouteSnapshot",
    "RouteState",
    "RouteUnavailable",
    "ServerStatus",
    "Tone",
    "TransportMode",
    "Waypoint",
]

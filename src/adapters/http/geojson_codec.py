"""Wire format of the routing proxy (GeoJSON + a plain-text "wait" signal)."""

from __future__ import annotations

import logging
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError

from src.domain.models import (
    GeoPoint,
    Obstacle,
    ObstacleSnapshot,
    RouteBusy,
    RouteInvalid,
    RouteOutcome,
    RoutePath,
    RouteReady,
    RouteUnavailable,
    ServerStatus,
    Waypoint,
)
from src.domain.models.category import normalise_category
from src.domain.models.obstacle import normalise_optional_text, positive_radius

logger = logging.getLogger(__name__)

WAIT_SIGNAL = "wait"

# Property names the store has been seen to use for the radius, in order.
RADIUS_KEYS: tuple[str, ...] = (
    "radius",
    "r",
    "R",
    "radius (m)",
    "radius_m",
    "radiusM",
    "distance (meters)",
    "distance(meters)",
    "distance_meters",
    "distance",
    "distance_m",
    "distanceM",
)


class FeatureCollectionWire(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["FeatureCollection"]
    features: list[Any]


def is_wait_signal(payload: Any) -> bool:
    return isinstance(payload, str) and payload.strip().lower() == WAIT_SIGNAL


def parse_status(payload: Any) -> ServerStatus:
    text = str(payload).strip().lower()
    if text == ServerStatus.READY.value:
        return ServerStatus.READY
    if text == ServerStatus.WAIT.value:
        return ServerStatus.WAIT
    return ServerStatus.UNKNOWN


def read_radius(feature: Mapping[str, Any]) -> float | None:
    props = feature.get("properties")
    if isinstance(props, Mapping):
        for key in RADIUS_KEYS:
            r = positive_radius(props.get(key))
            if r is not None:
                return r
    for key in ("radius", "r"):
        r = positive_radius(feature.get(key))
        if r is not None:
            return r
    return None


def feature_to_obstacle(feature: Any, idx: int) -> Obstacle | None:
    if not isinstance(feature, Mapping):
        return None
    props = feature.get("properties")
    props = props if isinstance(props, Mapping) else {}

    name = str(props.get("name") or props.get("id") or "").strip() or str(idx)

    geometry = feature.get("geometry")
    try:
        if not isinstance(geometry, Mapping) or geometry.get("type") != "Point":
            raise ValueError(f"Unsupported geometry: {geometry!r}")
        location = GeoPoint.from_lon_lat(geometry.get("coordinates") or ())
    except (TypeError, ValueError) as exc:
        logger.warning(
            "Skipping blockage without a usable point",
            extra={"name": name, "error": str(exc)},
        )
        return None

    return Obstacle(
        name=name,
        location=location,
        radius_m=read_radius(feature),
        description=normalise_optional_text(props.get("description")),
    )


def parse_obstacles(payload: Any) -> ObstacleSnapshot:
    if payload is None or payload == "":
        return ()
    collection = FeatureCollectionWire.model_validate(payload)
    out: list[Obstacle] = []
    for idx, feature in enumerate(collection.features):
        ob = feature_to_obstacle(feature, idx)
        if ob is not None:
            out.append(ob)
    return tuple(out)


def obstacle_to_feature(obstacle: Obstacle) -> dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": obstacle.location.to_lon_lat()},
        "properties": {
            "name": obstacle.name,
            "radius": obstacle.radius_m or 0,
            "description": normalise_optional_text(obstacle.description),
        },
    }


def obstacle_create_body(obstacle: Obstacle) -> dict[str, Any]:
    return {
        "point": {"long": obstacle.location.lon, "lat": obstacle.location.lat},
        "radius": obstacle.radius_m,
        "name": obstacle.name,
        "description": normalise_optional_text(obstacle.description),
    }


def _waypoint(point: Waypoint) -> dict[str, Any]:
    return {
        "long": point.location.lon,
        "lat": point.location.lat,
        "description": point.description,
    }


def route_body(
    *, start: Waypoint, end: Waypoint, obstacles: ObstacleSnapshot
) -> dict[str, Any]:
    return {
        "startPt": _waypoint(start),
        "endPt": _waypoint(end),
        "blockages": {
            "type": "FeatureCollection",
            "features": [obstacle_to_feature(ob) for ob in obstacles],
        },
    }


def classify_route_payload(payload: Any) -> RouteOutcome:
    """Map a raw route reply onto the tagged outcome."""

    if is_wait_signal(payload):
        return RouteBusy()
    if isinstance(payload, str):
        return RouteInvalid(detail=f"unexpected text reply: {payload[:80]!r}")

    try:
        collection = FeatureCollectionWire.model_validate(payload)
    except ValidationError as exc:
        return RouteInvalid(detail=str(exc))

    path = RoutePath(
        features=tuple(f for f in collection.features if isinstance(f, Mapping))
    )
    if path.line_count == 0:
        return RouteUnavailable(path=path)
    return RouteReady(path=path)


def parse_category_list(payload: Any) -> tuple[str, ...]:
    if not isinstance(payload, list):
        return ()
    out = (normalise_category(x) for x in payload)
    return tuple(dict.fromkeys(x for x in out if x))

from __future__ import annotations

import math
from dataclasses import dataclass

from src.domain.exceptions.obstacles import InvalidObstacle

from .geo import GeoPoint


def normalise_optional_text(value: object) -> str:
    """Collapse absent-looking values ("", None, "null", "undefined") to ""."""

    if value is None:
        return ""
    text = str(value).strip()
    if text.lower() in {"", "null", "undefined"}:
        return ""
    return text


def identity_key(name: object) -> str:
    return str(name or "").strip().lower()


def positive_radius(value: object) -> float | None:
    """Return ``value`` as a radius in meters, or None if it is not usable."""

    if value is None or isinstance(value, bool):
        return None
    try:
        r = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(r) or r <= 0.0:
        return None
    return r


@dataclass(frozen=True, slots=True)
class Obstacle:
    """A named circular exclusion zone ("blockage").

    ``radius_m`` is None when the remote store omitted it and nothing local
    could fill it in.
    """

    name: str
    location: GeoPoint
    radius_m: float | None = None
    description: str = ""

    @property
    def key(self) -> str:
        return identity_key(self.name)


@dataclass(frozen=True, slots=True)
class ObstacleDraft:
    """User-supplied candidate for a new obstacle, validated on construction."""

    lat: float
    lon: float
    radius_m: float
    name: str
    description: str = ""

    def __post_init__(self) -> None:
        for label, value in (("lat", self.lat), ("lon", self.lon), ("radius", self.radius_m)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidObstacle(f"Blockage {label} must be a number.")
            if not math.isfinite(value):
                raise InvalidObstacle(
                    "Blockage coordinates and radius must be valid numbers."
                )
        if self.radius_m <= 0:
            raise InvalidObstacle("Blockage radius must be greater than zero.")
        if not self.name.strip():
            raise InvalidObstacle("Blockage name is required.")
        try:
            GeoPoint(lat=float(self.lat), lon=float(self.lon))
        except ValueError as exc:
            raise InvalidObstacle(str(exc)) from exc

    @property
    def key(self) -> str:
        return identity_key(self.name)

    def to_obstacle(self) -> Obstacle:
        return Obstacle(
            name=self.name.strip(),
            location=GeoPoint(lat=float(self.lat), lon=float(self.lon)),
            radius_m=float(self.radius_m),
            description=normalise_optional_text(self.description),
        )


@dataclass(frozen=True, slots=True)
class ObstacleMeta:
    """Last known-good radius/description for an identity key."""

    radius_m: float | None = None
    description: str = ""


ObstacleSnapshot = tuple[Obstacle, ...]

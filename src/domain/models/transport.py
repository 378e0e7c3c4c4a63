from __future__ import annotations

from enum import Enum


class TransportMode(str, Enum):
    CAR = "car"
    CYCLE = "cycle"
    WALK = "walk"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, raw: str | None) -> "TransportMode":
        value = (raw or "").strip().lower()
        for mode in cls:
            if mode.value == value:
                return mode
        return cls.CAR


# Road types the engine should treat as traversable, per mode (OSM highway tags).
ROAD_TYPES_BY_MODE: dict[TransportMode, tuple[str, ...]] = {
    TransportMode.CAR: (
        "motorway",
        "motorway_link",
        "trunk",
        "trunk_link",
        "primary",
        "primary_link",
        "secondary",
        "secondary_link",
        "tertiary",
        "tertiary_link",
        "residential",
    ),
    TransportMode.CYCLE: (
        "cycleway",
        "footway",
        "path",
        "pedestrian",
        "steps",
        "track",
        "crossing",
        "residential",
    ),
    TransportMode.WALK: (
        "footway",
        "path",
        "pedestrian",
        "steps",
        "track",
        "crossing",
        "residential",
    ),
}


def road_types_for_mode(mode: TransportMode) -> tuple[str, ...]:
    return ROAD_TYPES_BY_MODE.get(mode, ROAD_TYPES_BY_MODE[TransportMode.CAR])

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

CATEGORY_TAG = "__category"

# Lower rank = more important road.
_RANK: dict[str, int] = {
    "motorway": 1,
    "motorway_link": 2,
    "trunk": 3,
    "trunk_link": 4,
    "primary": 5,
    "primary_link": 6,
    "secondary": 7,
    "secondary_link": 8,
    "tertiary": 9,
    "tertiary_link": 10,
    "residential": 11,
}


def normalise_category(raw: object) -> str:
    return str(raw or "").strip().lower()


def sort_by_importance(categories: Iterable[object]) -> tuple[str, ...]:
    uniq = {c for c in (normalise_category(x) for x in categories) if c}
    return tuple(sorted(uniq, key=lambda c: (_RANK.get(c, 999), c)))


@dataclass(frozen=True, slots=True)
class CategoryLayer:
    """Geometry for one road category; every feature carries ``CATEGORY_TAG``."""

    category: str
    features: tuple[Mapping[str, Any], ...] = ()


@dataclass(frozen=True, slots=True)
class LayerSnapshot:
    valid: tuple[str, ...] = ()
    selected: tuple[str, ...] = ()
    pending: tuple[str, ...] = ()
    visible: tuple[Mapping[str, Any], ...] | None = None

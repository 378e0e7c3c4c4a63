"""Reconciliation rules between the local obstacle view and remote snapshots.

The remote store is a lossy mirror: it may omit ``radius`` or
``description`` on read. A side table (``meta``) keyed by identity key keeps
the last known-good values so incomplete records can be filled back in.
All functions here are pure apart from the explicit ``meta`` argument they
refresh.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Collection, Iterable, MutableMapping

from src.domain.models.obstacle import (
    Obstacle,
    ObstacleMeta,
    ObstacleSnapshot,
    identity_key,
    normalise_optional_text,
    positive_radius,
)

MetaCache = MutableMapping[str, ObstacleMeta]


def upsert_meta(
    meta: MetaCache, name: str, radius_m: object, description: object
) -> None:
    """Refresh the cached values for ``name``; empty or zero values never win."""

    key = identity_key(name)
    if not key:
        return

    r = positive_radius(radius_m)
    d = normalise_optional_text(description)
    prev = meta.get(key) or ObstacleMeta()

    meta[key] = ObstacleMeta(
        radius_m=r if r is not None else prev.radius_m,
        description=d if d else prev.description,
    )


def enrich_snapshot(
    snapshot: Iterable[Obstacle],
    meta: MetaCache,
    *,
    skip_keys: Collection[str] = (),
) -> ObstacleSnapshot:
    """Fill missing radius/description from ``meta`` and learn what was supplied.

    Keys in ``skip_keys`` are still filled in but never written back to the
    cache (they are being deleted locally).
    """

    out: list[Obstacle] = []
    for ob in snapshot:
        key = ob.key
        radius = positive_radius(ob.radius_m)
        description = normalise_optional_text(ob.description)

        if key and key not in skip_keys and (radius is not None or description):
            upsert_meta(meta, ob.name, radius, description)

        cached = meta.get(key) if key else None
        if radius is None and cached is not None:
            radius = cached.radius_m
        if not description and cached is not None:
            description = cached.description

        out.append(replace(ob, radius_m=radius, description=description or ""))
    return tuple(out)


def _by_key(snapshot: Iterable[Obstacle]) -> dict[str, Obstacle]:
    out: dict[str, Obstacle] = {}
    for ob in snapshot:
        if ob.key:
            out[ob.key] = ob
    return out


def merge_snapshots(
    local: Iterable[Obstacle],
    remote: Iterable[Obstacle],
    meta: MetaCache,
    pending_delete: Collection[str] = (),
) -> ObstacleSnapshot:
    """Union of local and remote views, remote wins, pending deletes dropped.

    Order follows the local view first, then keys only the remote knows.
    """

    local_map = _by_key(local)
    remote_map = _by_key(remote)

    merged: list[Obstacle] = []
    for key in dict.fromkeys([*local_map, *remote_map]):
        if key in pending_delete:
            continue

        local_ob = local_map.get(key)
        remote_ob = remote_map.get(key)
        chosen = remote_ob or local_ob
        if chosen is None:
            continue

        cached = meta.get(key)

        radius = positive_radius(chosen.radius_m)
        if radius is None and local_ob is not None:
            radius = positive_radius(local_ob.radius_m)
        if radius is None and cached is not None:
            radius = cached.radius_m

        description = normalise_optional_text(chosen.description)
        if not description and local_ob is not None:
            description = normalise_optional_text(local_ob.description)
        if not description and cached is not None:
            description = cached.description

        merged.append(replace(chosen, radius_m=radius, description=description or ""))

    return tuple(merged)


def remove_by_key(snapshot: Iterable[Obstacle], key: str) -> ObstacleSnapshot:
    return tuple(ob for ob in snapshot if ob.key != key)


def keys_of(snapshot: Iterable[Obstacle]) -> set[str]:
    return {ob.key for ob in snapshot if ob.key}

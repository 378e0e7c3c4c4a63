from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from src.app.ports.output import INotifier, IRoutingGateway
from src.app.services.observable import Listener, Observable
from src.domain.algorithms.obstacle_merge import (
    enrich_snapshot,
    keys_of,
    merge_snapshots,
    remove_by_key,
    upsert_meta,
)
from src.domain.exceptions import DuplicateObstacle, GatewayError, InvalidObstacle
from src.domain.models import ObstacleDraft, ObstacleMeta, ObstacleSnapshot, Tone
from src.domain.models.obstacle import identity_key

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ObstacleStore:
    """Local view of the blockages, kept coherent with the remote store.

    - Edits are applied optimistically, before the remote call returns.
    - ``sync`` merges the remote snapshot into the local one: remote wins per
      identity key, keys with a pending delete are hidden, missing radius or
      description are filled from the local copy or the meta cache.
    - A failed create is not rolled back unless ``rollback_on_failure`` is
      set; the next sync brings the view back in line with the server.
    """

    gateway: IRoutingGateway
    notifier: INotifier
    rollback_on_failure: bool = False

    _live: ObstacleSnapshot = field(default=(), init=False)
    _meta: dict[str, ObstacleMeta] = field(default_factory=dict, init=False, repr=False)
    _pending_delete: set[str] = field(default_factory=set, init=False)
    _events: Observable[ObstacleSnapshot] = field(
        default_factory=Observable, init=False, repr=False
    )

    def get_snapshot(self) -> ObstacleSnapshot:
        return self._live

    def subscribe(self, listener: Listener[ObstacleSnapshot]) -> Callable[[], None]:
        return self._events.subscribe(listener)

    @property
    def pending_deletes(self) -> frozenset[str]:
        return frozenset(self._pending_delete)

    def meta_for(self, name: str) -> ObstacleMeta | None:
        return self._meta.get(identity_key(name))

    def _set_live(self, snapshot: ObstacleSnapshot) -> None:
        self._live = snapshot
        self._events.publish(snapshot)

    async def add(self, draft: ObstacleDraft) -> ObstacleSnapshot | None:
        """Insert ``draft`` optimistically, create it remotely, then sync.

        Returns the synced remote snapshot, or None if the create failed.
        Raises ``DuplicateObstacle`` before any network call when the name is
        already taken.
        """

        key = draft.key
        if key in keys_of(self._live):
            raise DuplicateObstacle("A blockage with the same name already exists.")

        obstacle = draft.to_obstacle()
        upsert_meta(self._meta, obstacle.name, obstacle.radius_m, obstacle.description)
        # Re-adding a name whose delete is still unconfirmed: the user wants it back.
        self._pending_delete.discard(key)
        self._set_live((*self._live, obstacle))

        logger.debug(
            "Blockage add posting",
            extra={
                "name": obstacle.name,
                "lat": obstacle.location.lat,
                "lon": obstacle.location.lon,
                "radius_m": obstacle.radius_m,
            },
        )

        try:
            await self.gateway.create_obstacle(obstacle)
        except GatewayError as exc:
            logger.warning("Blockage add failed", extra={"name": obstacle.name})
            if self.rollback_on_failure:
                self._set_live(remove_by_key(self._live, key))
            self.notifier.notify(Tone.BAD, str(exc) or "Failed to add blockage")
            return None

        self.notifier.notify(Tone.GOOD, "Blockage added.")
        return await self.sync()

    async def remove(self, name: str) -> ObstacleSnapshot | None:
        """Hide ``name`` immediately, delete it remotely, then sync.

        The sync runs on both paths: to confirm on success, to recover the
        true state on failure. Returns the synced remote snapshot (None if
        the sync itself failed).
        """

        nm = str(name or "").strip()
        if not nm:
            raise InvalidObstacle("Blockage name is required.")

        key = identity_key(nm)
        self._pending_delete.add(key)
        self._meta.pop(key, None)
        self._set_live(remove_by_key(self._live, key))

        logger.debug("Blockage delete requested", extra={"name": nm})

        try:
            await self.gateway.delete_obstacle(nm)
        except GatewayError as exc:
            logger.warning("Blockage delete failed", extra={"name": nm})
            self._pending_delete.discard(key)
            self.notifier.notify(Tone.BAD, str(exc) or "Failed to delete blockage")
            return await self.sync()

        self.notifier.notify(Tone.GOOD, "Blockage deleted.")
        return await self.sync()

    async def sync(self) -> ObstacleSnapshot | None:
        """Merge the authoritative remote snapshot into the live collection.

        Returns the enriched remote snapshot (what the server just confirmed),
        or None if it could not be fetched.
        """

        try:
            raw = await self.gateway.list_obstacles()
        except GatewayError as exc:
            logger.warning("Blockage sync failed: %s", exc)
            self.notifier.notify(Tone.BAD, str(exc) or "Failed to load blockages")
            return None

        server = enrich_snapshot(raw, self._meta, skip_keys=self._pending_delete)

        # A pending delete is settled once the server stops reporting the key.
        self._pending_delete.intersection_update(keys_of(server))

        local = enrich_snapshot(self._live, self._meta, skip_keys=self._pending_delete)
        merged = merge_snapshots(local, server, self._meta, self._pending_delete)
        self._set_live(merged)

        logger.info(
            "Blockages synced",
            extra={
                "server_count": len(server),
                "live_count": len(merged),
                "pending_deletes": len(self._pending_delete),
            },
        )
        return server

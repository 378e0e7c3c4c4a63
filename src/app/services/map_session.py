from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from src.app.ports.output import INotifier, IRoutingGateway, IScheduler
from src.app.services.layer_cache import LayerCache
from src.app.services.obstacle_store import ObstacleStore
from src.app.services.route_orchestrator import RouteOrchestrator
from src.app.services.server_status_monitor import ServerStatusMonitor
from src.domain.exceptions import DuplicateObstacle, ObstacleError
from src.domain.models import (
    GeoPoint,
    LayerSnapshot,
    ObstacleDraft,
    ObstacleSnapshot,
    RouteOutcome,
    RouteSnapshot,
    ServerStatus,
    Tone,
    TransportMode,
)
from src.domain.models.transport import road_types_for_mode

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    status: ServerStatus
    status_error: str
    transport_mode: TransportMode
    obstacles: ObstacleSnapshot
    pending_deletes: frozenset[str]
    route: RouteSnapshot
    layers: LayerSnapshot


@dataclass(slots=True)
class MapSession:
    """One user's map: obstacles, route and road-type overlays.

    Obstacle edits feed the synced snapshot straight into a debounced
    re-route, so the route always reflects what the server just confirmed.
    """

    monitor: ServerStatusMonitor
    obstacles: ObstacleStore
    router: RouteOrchestrator
    layers: LayerCache
    notifier: INotifier
    scheduler: IScheduler
    transport_mode: TransportMode = TransportMode.CAR

    _was_ready: bool = field(default=False, init=False)
    _unsubscribe: Callable[[], None] | None = field(default=None, init=False, repr=False)

    @classmethod
    def build(
        cls,
        *,
        gateway: IRoutingGateway,
        scheduler: IScheduler,
        notifier: INotifier,
        transport_mode: TransportMode = TransportMode.CAR,
        rollback_on_failure: bool = False,
        poll_interval_s: float = 3.0,
        debounce_s: float = 0.25,
        max_attempts: int = 5,
    ) -> "MapSession":
        monitor = ServerStatusMonitor(
            gateway=gateway, scheduler=scheduler, poll_interval_s=poll_interval_s
        )
        store = ObstacleStore(
            gateway=gateway, notifier=notifier, rollback_on_failure=rollback_on_failure
        )
        router = RouteOrchestrator(
            gateway=gateway,
            obstacles=store,
            scheduler=scheduler,
            notifier=notifier,
            readiness=lambda: monitor.status,
            transport_mode=transport_mode,
            debounce_s=debounce_s,
            max_attempts=max_attempts,
        )
        layers = LayerCache(gateway=gateway, notifier=notifier)
        return cls(
            monitor=monitor,
            obstacles=store,
            router=router,
            layers=layers,
            notifier=notifier,
            scheduler=scheduler,
            transport_mode=transport_mode,
        )

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> ServerStatus:
        if self._unsubscribe is None:
            self._unsubscribe = self.monitor.subscribe(self._on_status)
        return await self.monitor.poll_until_ready()

    async def recheck_status(self) -> ServerStatus:
        return await self.monitor.poll_until_ready()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.monitor.stop()
        self.router.close()

    def _on_status(self, status: ServerStatus) -> None:
        became_ready = status is ServerStatus.READY and not self._was_ready
        self._was_ready = status is ServerStatus.READY
        if became_ready:
            self.scheduler.call_later(0.0, self._load_after_ready)

    async def _load_after_ready(self) -> None:
        logger.info("Routing engine ready; loading layers and blockages")
        await self.layers.refresh(road_types_for_mode(self.transport_mode))
        await self.obstacles.sync()

    # -- obstacles -----------------------------------------------------------

    async def add_obstacle(
        self,
        *,
        lat: float,
        lon: float,
        radius_m: float,
        name: str,
        description: str = "",
    ) -> ObstacleSnapshot | None:
        """Validate and add an obstacle, then re-route against the synced view.

        Rejections are surfaced as a notice and re-raised as ``ObstacleError``.
        """

        try:
            draft = ObstacleDraft(
                lat=lat, lon=lon, radius_m=radius_m, name=name, description=description
            )
            synced = await self.obstacles.add(draft)
        except ObstacleError as exc:
            tone = Tone.BAD if isinstance(exc, DuplicateObstacle) else Tone.WARN
            self.notifier.notify(tone, str(exc))
            raise

        if synced is not None:
            self.router.schedule_auto_reroute("blockage-add", synced)
        return synced

    async def remove_obstacle(self, name: str) -> ObstacleSnapshot | None:
        try:
            synced = await self.obstacles.remove(name)
        except ObstacleError as exc:
            self.notifier.notify(Tone.WARN, str(exc))
            raise

        self.router.schedule_auto_reroute("blockage-delete", synced)
        return synced

    async def refresh_obstacles(self) -> ObstacleSnapshot | None:
        return await self.obstacles.sync()

    # -- route -----------------------------------------------------------------

    def set_start(self, location: GeoPoint | None, description: str = "Start") -> None:
        self.router.set_start(location, description)

    def set_end(self, location: GeoPoint | None, description: str = "End") -> None:
        self.router.set_end(location, description)

    async def search_route(self) -> RouteOutcome | None:
        return await self.router.search("ui")

    def clear_route(self) -> None:
        self.router.clear()

    async def set_transport_mode(self, mode: TransportMode) -> None:
        self.transport_mode = mode
        self.router.transport_mode = mode
        await self.layers.refresh(road_types_for_mode(mode))

    # -- road-type overlays ----------------------------------------------------

    async def refresh_categories(self) -> tuple[str, ...]:
        return await self.layers.refresh(road_types_for_mode(self.transport_mode))

    async def toggle_category(self, category: str, checked: bool) -> None:
        await self.layers.toggle(category, checked)

    async def select_categories(self, categories: Iterable[str]) -> None:
        await self.layers.select(categories)

    async def select_all_categories(self) -> None:
        await self.layers.select_all()

    def hide_all_categories(self) -> None:
        self.layers.hide_all()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            status=self.monitor.status,
            status_error=self.monitor.error,
            transport_mode=self.transport_mode,
            obstacles=self.obstacles.get_snapshot(),
            pending_deletes=self.obstacles.pending_deletes,
            route=self.router.snapshot(),
            layers=self.layers.snapshot(),
        )

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

import pytest

from src.app.ports.output import INotifier, IRoutingGateway, IScheduler, ITimerHandle
from src.app.ports.output.scheduler import TimerCallback
from src.app.services.obstacle_store import ObstacleStore
from src.app.services.route_orchestrator import RouteOrchestrator
from src.domain.exceptions import GatewayError
from src.domain.models import (
    CategoryLayer,
    GeoPoint,
    Obstacle,
    ObstacleSnapshot,
    RouteOutcome,
    RoutePath,
    RouteReady,
    ServerStatus,
    Tone,
    Waypoint,
)
from src.domain.models.obstacle import identity_key


def line_path() -> RoutePath:
    return RoutePath(
        features=(
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[103.85, 1.30], [103.86, 1.31]],
                },
                "properties": {},
            },
        )
    )


@dataclass
class RecordingNotifier(INotifier):
    notices: list[tuple[Tone, str]] = field(default_factory=list)

    def notify(self, tone: Tone, text: str) -> None:
        self.notices.append((tone, text))

    def texts(self, tone: Tone | None = None) -> list[str]:
        return [t for (k, t) in self.notices if tone is None or k is tone]


@dataclass
class _ManualTimer(ITimerHandle):
    due: float
    callback: TimerCallback
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler(IScheduler):
    """Virtual clock: timers only fire when the test advances time."""

    now: float = 0.0
    timers: list[_ManualTimer] = field(default_factory=list)

    def call_later(self, delay_s: float, callback: TimerCallback) -> ITimerHandle:
        timer = _ManualTimer(due=self.now + delay_s, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[_ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.fired = True
            await timer.callback()
        self.now = target

    async def run_all(self, limit: int = 100) -> None:
        for _ in range(limit):
            pending = self.pending
            if not pending:
                return
            nxt = min(pending, key=lambda t: t.due)
            await self.advance(max(0.0, nxt.due - self.now))
        raise AssertionError("timers never settled")


@dataclass
class FakeRoutingGateway(IRoutingGateway):
    status: ServerStatus = ServerStatus.READY
    server_obstacles: list[Obstacle] = field(default_factory=list)
    # Drop radius/description when storing, like a lossy mirror.
    lossy: bool = False
    # Keep deleted obstacles in list_obstacles replies (stale reads).
    stale_deletes: bool = False

    route_replies: list[RouteOutcome | Exception] = field(default_factory=list)
    layers: dict[str, CategoryLayer | Exception] = field(default_factory=dict)
    all_types: tuple[str, ...] = ()
    valid_types: tuple[str, ...] = ()

    fail_readiness: Exception | None = None
    fail_create: Exception | None = None
    fail_delete: Exception | None = None
    fail_list: Exception | None = None
    fail_set_valid: Exception | None = None

    create_gate: asyncio.Event | None = None
    route_gate: asyncio.Event | None = None
    layer_gate: asyncio.Event | None = None

    created: list[Obstacle] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    route_requests: list[ObstacleSnapshot] = field(default_factory=list)
    category_fetches: list[str] = field(default_factory=list)
    valid_sets: list[list[str]] = field(default_factory=list)
    readiness_calls: int = 0
    list_calls: int = 0

    async def readiness(self) -> tuple[ServerStatus, str]:
        self.readiness_calls += 1
        if self.fail_readiness is not None:
            raise self.fail_readiness
        return self.status, self.status.value

    async def list_obstacles(self) -> ObstacleSnapshot:
        self.list_calls += 1
        if self.fail_list is not None:
            raise self.fail_list
        return tuple(self.server_obstacles)

    async def create_obstacle(self, obstacle: Obstacle) -> None:
        self.created.append(obstacle)
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.fail_create is not None:
            raise self.fail_create
        if self.lossy:
            obstacle = Obstacle(name=obstacle.name, location=obstacle.location)
        self.server_obstacles.append(obstacle)

    async def delete_obstacle(self, name: str) -> None:
        self.deleted.append(name)
        if self.fail_delete is not None:
            raise self.fail_delete
        if not self.stale_deletes:
            key = identity_key(name)
            self.server_obstacles = [o for o in self.server_obstacles if o.key != key]

    async def category_features(self, category: str) -> CategoryLayer:
        self.category_fetches.append(category)
        if self.layer_gate is not None:
            await self.layer_gate.wait()
        layer = self.layers.get(category)
        if layer is None:
            raise GatewayError(f"Unknown road type {category}", status_code=404)
        if isinstance(layer, Exception):
            raise layer
        return layer

    async def all_categories(self) -> tuple[str, ...]:
        return self.all_types

    async def valid_categories(self) -> tuple[str, ...]:
        return self.valid_types

    async def set_valid_categories(self, categories: Sequence[str]) -> None:
        self.valid_sets.append(list(categories))
        if self.fail_set_valid is not None:
            raise self.fail_set_valid

    async def request_route(
        self, *, start: Waypoint, end: Waypoint, obstacles: ObstacleSnapshot
    ) -> RouteOutcome:
        self.route_requests.append(obstacles)
        if self.route_gate is not None:
            await self.route_gate.wait()
        if self.route_replies:
            reply = self.route_replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply
        return RouteReady(path=line_path())


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def gateway() -> FakeRoutingGateway:
    return FakeRoutingGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store(gateway: FakeRoutingGateway, notifier: RecordingNotifier) -> ObstacleStore:
    return ObstacleStore(gateway=gateway, notifier=notifier)


@pytest.fixture
def orchestrator(
    gateway: FakeRoutingGateway,
    store: ObstacleStore,
    scheduler: ManualScheduler,
    notifier: RecordingNotifier,
) -> RouteOrchestrator:
    orch = RouteOrchestrator(
        gateway=gateway,
        obstacles=store,
        scheduler=scheduler,
        notifier=notifier,
        readiness=lambda: gateway.status,
    )
    orch.set_start(GeoPoint(lat=1.30, lon=103.85))
    orch.set_end(GeoPoint(lat=1.31, lon=103.86))
    return orch


@pytest.fixture
def route_path() -> RoutePath:
    return line_path()

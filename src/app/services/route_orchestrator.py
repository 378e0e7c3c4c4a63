from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from src.app.ports.output import INotifier, IRoutingGateway, IScheduler, ITimerHandle
from src.app.services.obstacle_store import ObstacleStore
from src.app.services.observable import Listener, Observable
from src.app.services.request_table import InFlightTable
from src.domain.algorithms.backoff import RETRY_DELAYS_MS, retry_delay_s
from src.domain.exceptions import GatewayError
from src.domain.models import (
    GeoPoint,
    ObstacleSnapshot,
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
    ServerStatus,
    Tone,
    TransportMode,
    Waypoint,
)
from src.domain.models.transport import road_types_for_mode

logger = logging.getLogger(__name__)

_ROUTE_KEY = "route"
_RETRY_MARK = ":retry"


@dataclass(slots=True)
class RouteOrchestrator:
    """Drives route searches for one map session.

    State machine::

        IDLE -> REQUESTING -> READY
                           -> BACKOFF_WAIT -> REQUESTING ...
                           -> FAILED

    - Single flight: a search issued while another is in flight is dropped.
    - The engine may answer "wait"; each such reply counts as an attempt
      and the search is retried after a delay from ``retry_delays_ms``.
      The reply that reaches ``max_attempts`` surfaces a single warning
      instead of another retry.
    - ``schedule_auto_reroute`` replays the last requested route after a
      short debounce, so bursts of obstacle edits collapse into one search.
    """

    gateway: IRoutingGateway
    obstacles: ObstacleStore
    scheduler: IScheduler
    notifier: INotifier
    readiness: Callable[[], ServerStatus]
    transport_mode: TransportMode = TransportMode.CAR

    # Tuning knobs
    debounce_s: float = 0.25
    max_attempts: int = 5
    retry_delays_ms: tuple[int, ...] = RETRY_DELAYS_MS

    _start: Waypoint | None = field(default=None, init=False)
    _end: Waypoint | None = field(default=None, init=False)
    _last_request: tuple[Waypoint, Waypoint] | None = field(default=None, init=False)
    _route: RoutePath | None = field(default=None, init=False)
    _state: RouteState = field(default=RouteState.IDLE, init=False)
    _request_seq: int = field(default=0, init=False)
    _attempts: int = field(default=0, init=False)
    _next_delay_s: float | None = field(default=None, init=False)
    _retry_reason: str | None = field(default=None, init=False)
    _retry_override: ObstacleSnapshot | None = field(default=None, init=False)
    _retry_timer: ITimerHandle | None = field(default=None, init=False, repr=False)
    _reroute_timer: ITimerHandle | None = field(default=None, init=False, repr=False)
    _inflight: InFlightTable[str, RouteOutcome | None] = field(
        default_factory=InFlightTable, init=False, repr=False
    )
    _events: Observable[RouteSnapshot] = field(
        default_factory=Observable, init=False, repr=False
    )

    # -- endpoints / observation -------------------------------------------

    def set_start(self, location: GeoPoint | None, description: str = "Start") -> None:
        self._start = (
            Waypoint(location=location, description=description or "Start")
            if location is not None
            else None
        )
        self._publish()

    def set_end(self, location: GeoPoint | None, description: str = "End") -> None:
        self._end = (
            Waypoint(location=location, description=description or "End")
            if location is not None
            else None
        )
        self._publish()

    @property
    def state(self) -> RouteState:
        return self._state

    @property
    def current_route(self) -> RoutePath | None:
        return self._route

    @property
    def in_flight(self) -> bool:
        return _ROUTE_KEY in self._inflight

    def retry_state(self) -> RetryState:
        return RetryState(
            attempt_count=self._attempts,
            max_attempts=self.max_attempts,
            next_delay_s=self._next_delay_s,
            last_reason=self._retry_reason,
            last_override=self._retry_override,
        )

    def snapshot(self) -> RouteSnapshot:
        return RouteSnapshot(
            state=self._state,
            route=self._route,
            request_id=self._request_seq,
            in_flight=self.in_flight,
            retry=self.retry_state(),
            start=self._start,
            end=self._end,
            has_last_request=self._last_request is not None,
        )

    def subscribe(self, listener: Listener[RouteSnapshot]) -> Callable[[], None]:
        return self._events.subscribe(listener)

    def _publish(self) -> None:
        self._events.publish(self.snapshot())

    def _set_state(self, state: RouteState) -> None:
        self._state = state
        self._publish()

    # -- searching ---------------------------------------------------------

    def _ready_or_notify(self) -> bool:
        status = self.readiness()
        if status is ServerStatus.READY:
            return True
        self.notifier.notify(Tone.BAD, status.not_ready_message())
        return False

    async def search(
        self, reason: str = "ui", obstacle_override: ObstacleSnapshot | None = None
    ) -> RouteOutcome | None:
        """Search a route between the current start and end points.

        Returns the engine's outcome, or None if the search was rejected,
        skipped (another one is in flight) or failed in transport.
        """

        if not self._ready_or_notify():
            return None

        if self._start is None or self._end is None:
            logger.info("Route search blocked: missing start/end")
            self.notifier.notify(Tone.WARN, "Start and End coordinates must be set.")
            return None

        return await self._dispatch(reason, obstacle_override, (self._start, self._end))

    async def _replay(
        self, reason: str, obstacle_override: ObstacleSnapshot | None
    ) -> RouteOutcome | None:
        if self._last_request is None:
            logger.info("Route replay skipped: no last route request")
            return None
        if not self._ready_or_notify():
            return None
        return await self._dispatch(reason, obstacle_override, self._last_request)

    async def _dispatch(
        self,
        reason: str,
        obstacle_override: ObstacleSnapshot | None,
        endpoints: tuple[Waypoint, Waypoint],
    ) -> RouteOutcome | None:
        if self.in_flight:
            logger.info("Route search skipped: in flight", extra={"reason": reason})
            return None

        self._last_request = endpoints
        self._request_seq += 1
        start, end = endpoints
        snapshot = (
            obstacle_override
            if obstacle_override is not None
            else self.obstacles.get_snapshot()
        )
        request = RouteRequest(
            id=self._request_seq,
            start=start,
            end=end,
            obstacles=snapshot,
            reason=reason,
            transport_mode=self.transport_mode,
        )

        task = self._inflight.start(
            _ROUTE_KEY, lambda: self._execute(request, obstacle_override)
        )
        self._set_state(RouteState.REQUESTING)
        outcome = await asyncio.shield(task)
        self._publish()
        return outcome

    async def _execute(
        self, request: RouteRequest, obstacle_override: ObstacleSnapshot | None
    ) -> RouteOutcome | None:
        mode = request.transport_mode
        road_types = road_types_for_mode(mode)
        try:
            await self.gateway.set_valid_categories(road_types)
        except GatewayError:
            logger.warning(
                "Route aborted: failed to set road types", extra={"mode": mode.value}
            )
            self.notifier.notify(Tone.WARN, f"Failed to set road types for {mode.value}")
            self._state = RouteState.FAILED
            return None

        logger.info(
            "Route request sending",
            extra={
                "request_id": request.id,
                "reason": request.reason,
                "obstacle_count": len(request.obstacles),
                "transport_mode": mode.value,
            },
        )

        try:
            outcome = await self.gateway.request_route(
                start=request.start, end=request.end, obstacles=request.obstacles
            )
        except GatewayError as exc:
            logger.warning("Route request failed", extra={"request_id": request.id})
            self.notifier.notify(
                Tone.BAD, str(exc) or "Unable to get route. Please try again."
            )
            self._state = RouteState.FAILED
            return None

        self._handle_outcome(request, obstacle_override, outcome)
        return outcome

    def _handle_outcome(
        self,
        request: RouteRequest,
        obstacle_override: ObstacleSnapshot | None,
        outcome: RouteOutcome,
    ) -> None:
        label = request.transport_mode.label

        if isinstance(outcome, RouteBusy):
            logger.info(
                "Route engine busy",
                extra={"request_id": request.id, "reason": request.reason},
            )
            self._attempts = min(self._attempts + 1, self.max_attempts)
            if self._attempts < self.max_attempts:
                self._schedule_retry(request.reason, obstacle_override)
                self._state = RouteState.BACKOFF_WAIT
            else:
                logger.warning(
                    "Route retry limit reached", extra={"request_id": request.id}
                )
                self._next_delay_s = None
                self.notifier.notify(
                    Tone.WARN, "Route engine still warming up. Try again shortly."
                )
                self._state = RouteState.FAILED
            return

        if isinstance(outcome, RouteInvalid):
            logger.warning(
                "Route response has a bad shape",
                extra={"request_id": request.id, "detail": outcome.detail},
            )
            self.notifier.notify(Tone.BAD, "Route API returned invalid data.")
            self._state = RouteState.FAILED
            return

        if isinstance(outcome, RouteUnavailable):
            logger.info(
                "No route line returned",
                extra={"request_id": request.id, "transport_mode": label},
            )
            self._route = None
            self.notifier.notify(Tone.BAD, f"No available route for {label} route")
            self._state = RouteState.FAILED
            return

        if isinstance(outcome, RouteReady):
            self._cancel_retry()
            self._attempts = 0
            self._next_delay_s = None
            self._retry_reason = None
            self._retry_override = None
            self._route = outcome.path
            self.notifier.notify(Tone.GOOD, f"{label} route loaded successfully.")
            self._state = RouteState.READY

    def _schedule_retry(
        self, reason: str, obstacle_override: ObstacleSnapshot | None
    ) -> None:
        attempt = self._attempts
        delay_s = retry_delay_s(attempt - 1, self.retry_delays_ms)
        base_reason = reason.split(_RETRY_MARK, 1)[0] or "auto"

        self._next_delay_s = delay_s
        self._retry_reason = base_reason
        self._retry_override = obstacle_override

        logger.info(
            "Route retry scheduled",
            extra={"attempt": attempt, "delay_s": delay_s, "label": "backend_wait"},
        )

        async def _fire() -> None:
            self._retry_timer = None
            self._next_delay_s = None
            await self._replay(f"{base_reason}{_RETRY_MARK}{attempt}", obstacle_override)
            if self._state is RouteState.BACKOFF_WAIT and self._retry_timer is None:
                self._set_state(RouteState.FAILED)

        self._cancel_retry()
        self._retry_timer = self.scheduler.call_later(delay_s, _fire)

    def _cancel_retry(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def _cancel_reroute(self) -> None:
        if self._reroute_timer is not None:
            self._reroute_timer.cancel()
            self._reroute_timer = None

    # -- auto reroute --------------------------------------------------------

    def schedule_auto_reroute(
        self, reason: str = "auto", obstacle_override: ObstacleSnapshot | None = None
    ) -> None:
        """Debounced replay of the last route, e.g. after an obstacle edit.

        The obstacle snapshot is read when the timer fires, unless an explicit
        override is given.
        """

        if self._last_request is None:
            logger.debug("Reroute skipped: no last route request")
            return
        if not self._ready_or_notify():
            return

        self._cancel_reroute()

        async def _fire() -> None:
            self._reroute_timer = None
            logger.info("Reroute triggering", extra={"reason": reason or "auto"})
            await self._replay(reason or "auto", obstacle_override)

        self._reroute_timer = self.scheduler.call_later(self.debounce_s, _fire)

    def clear(self) -> None:
        """Drop the current route and forget the last request."""

        self._cancel_reroute()
        self._cancel_retry()
        self._route = None
        self._last_request = None
        self._next_delay_s = None
        logger.info("Route cleared by user")
        self._set_state(RouteState.IDLE)

    def close(self) -> None:
        self._cancel_reroute()
        self._cancel_retry()

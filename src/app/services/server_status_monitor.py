from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from src.app.ports.output import IRoutingGateway, IScheduler, ITimerHandle
from src.app.services.observable import Listener, Observable
from src.domain.exceptions import GatewayError
from src.domain.models import ServerStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServerStatusMonitor:
    """Tracks whether the routing engine is ready, polling until it is.

    Only one polling chain is ever alive: restarting or stopping bumps a
    generation counter that orphaned ticks check before rescheduling.
    """

    gateway: IRoutingGateway
    scheduler: IScheduler
    poll_interval_s: float = 3.0

    _status: ServerStatus = field(default=ServerStatus.UNKNOWN, init=False)
    _error: str = field(default="", init=False)
    _timer: ITimerHandle | None = field(default=None, init=False, repr=False)
    _generation: int = field(default=0, init=False)
    _events: Observable[ServerStatus] = field(
        default_factory=Observable, init=False, repr=False
    )

    @property
    def status(self) -> ServerStatus:
        return self._status

    @property
    def error(self) -> str:
        return self._error

    @property
    def polling(self) -> bool:
        return self._timer is not None

    def subscribe(self, listener: Listener[ServerStatus]) -> Callable[[], None]:
        return self._events.subscribe(listener)

    def _update(self, status: ServerStatus, error: str) -> None:
        changed = status is not self._status or error != self._error
        self._status = status
        self._error = error
        if changed:
            logger.info("Server status %s", status.value, extra={"error": error})
            self._events.publish(status)

    async def check_once(self) -> ServerStatus:
        try:
            status, raw = await self.gateway.readiness()
        except GatewayError as exc:
            self._update(ServerStatus.ERROR, str(exc) or "Failed to reach server")
            return ServerStatus.ERROR

        if status is ServerStatus.UNKNOWN:
            self._update(status, f"Unexpected response: {raw}")
        else:
            self._update(status, "")
        return status

    async def poll_until_ready(self) -> ServerStatus:
        self._cancel_timer()
        self._generation += 1
        generation = self._generation

        status = await self.check_once()
        if status is not ServerStatus.READY and generation == self._generation:
            self._schedule(generation)
        return status

    def _schedule(self, generation: int) -> None:
        async def _tick() -> None:
            if generation != self._generation:
                return
            self._timer = None
            status = await self.check_once()
            if status is not ServerStatus.READY and generation == self._generation:
                self._schedule(generation)

        self._timer = self.scheduler.call_later(self.poll_interval_s, _tick)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def stop(self) -> None:
        self._generation += 1
        self._cancel_timer()

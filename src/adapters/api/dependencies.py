from __future__ import annotations

import os

from fastapi import Request

from src.adapters.http import HttpRoutingGateway
from src.adapters.notifications import NoticeFeed
from src.adapters.scheduling import AsyncioScheduler
from src.app.services.map_session import MapSession
from src.domain.models import TransportMode


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def build_session(notices: NoticeFeed, scheduler: AsyncioScheduler) -> MapSession:
    session = MapSession.build(
        gateway=HttpRoutingGateway(),
        scheduler=scheduler,
        notifier=notices,
        transport_mode=TransportMode.parse(os.getenv("TRANSPORT_MODE")),
        rollback_on_failure=_env_bool("OBSTACLE_ROLLBACK_ON_FAILURE", False),
    )

    # Allow tuning via env without changing code.
    if os.getenv("READY_POLL_INTERVAL_S"):
        session.monitor.poll_interval_s = float(os.environ["READY_POLL_INTERVAL_S"])
    if os.getenv("REROUTE_DEBOUNCE_S"):
        session.router.debounce_s = float(os.environ["REROUTE_DEBOUNCE_S"])
    if os.getenv("ROUTE_RETRY_MAX_ATTEMPTS"):
        session.router.max_attempts = int(os.environ["ROUTE_RETRY_MAX_ATTEMPTS"])

    return session


def get_session(request: Request) -> MapSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise RuntimeError("Map session not started")
    return session


def get_notice_feed(request: Request) -> NoticeFeed:
    notices = getattr(request.app.state, "notices", None)
    if notices is None:
        raise RuntimeError("Notice feed not configured")
    return notices

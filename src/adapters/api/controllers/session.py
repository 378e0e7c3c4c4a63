from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from src.adapters.api.dependencies import get_notice_feed, get_session
from src.adapters.api.schemas.session import (
    LayersSchema,
    NoticeSchema,
    ObstacleSchema,
    RetrySchema,
    RouteStateSchema,
    SessionSchema,
    TransportModeSchema,
    WaypointSchema,
)
from src.adapters.notifications import NoticeFeed
from src.app.services.map_session import MapSession, SessionSnapshot
from src.domain.models import Obstacle, TransportMode, Waypoint

router = APIRouter(tags=["session"])


def _waypoint(point: Waypoint | None) -> WaypointSchema | None:
    if point is None:
        return None
    return WaypointSchema(
        lat=point.location.lat, lon=point.location.lon, description=point.description
    )


def obstacle_to_schema(ob: Obstacle) -> ObstacleSchema:
    return ObstacleSchema(
        name=ob.name,
        lat=ob.location.lat,
        lon=ob.location.lon,
        radius_m=ob.radius_m,
        description=ob.description,
    )


def session_to_schema(snap: SessionSnapshot) -> SessionSchema:
    route = snap.route
    layers = snap.layers
    return SessionSchema(
        status=snap.status.value,
        status_error=snap.status_error,
        transport_mode=snap.transport_mode.value,
        obstacles=[obstacle_to_schema(ob) for ob in snap.obstacles],
        pending_deletes=sorted(snap.pending_deletes),
        route=RouteStateSchema(
            state=route.state.value,
            request_id=route.request_id,
            in_flight=route.in_flight,
            has_last_request=route.has_last_request,
            start=_waypoint(route.start),
            end=_waypoint(route.end),
            retry=RetrySchema(
                attempt_count=route.retry.attempt_count,
                max_attempts=route.retry.max_attempts,
                next_delay_s=route.retry.next_delay_s,
                last_reason=route.retry.last_reason,
            ),
            route=route.route.to_geojson() if route.route is not None else None,
        ),
        layers=LayersSchema(
            valid=list(layers.valid),
            selected=list(layers.selected),
            pending=list(layers.pending),
            visible=(
                {"type": "FeatureCollection", "features": [dict(f) for f in layers.visible]}
                if layers.visible is not None
                else None
            ),
        ),
    )


@router.get("/session", response_model=SessionSchema)
def get_session_state(session: MapSession = Depends(get_session)) -> SessionSchema:
    return session_to_schema(session.snapshot())


@router.post("/status/recheck", response_model=SessionSchema)
async def recheck_status(session: MapSession = Depends(get_session)) -> SessionSchema:
    await session.recheck_status()
    return session_to_schema(session.snapshot())


@router.put("/transport-mode", response_model=SessionSchema)
async def set_transport_mode(
    req: TransportModeSchema, session: MapSession = Depends(get_session)
) -> SessionSchema:
    await session.set_transport_mode(TransportMode(req.mode))
    return session_to_schema(session.snapshot())


@router.get("/notices", response_model=list[NoticeSchema])
def list_notices(notices: NoticeFeed = Depends(get_notice_feed)) -> list[NoticeSchema]:
    return [
        NoticeSchema(id=n.id, tone=n.tone.value, text=n.text, created_at=n.created_at)
        for n in notices.recent()
    ]


@router.delete("/notices/{notice_id}", status_code=204)
def dismiss_notice(
    notice_id: str, notices: NoticeFeed = Depends(get_notice_feed)
) -> None:
    if not notices.dismiss(notice_id):
        raise HTTPException(status_code=404, detail="Notice not found")

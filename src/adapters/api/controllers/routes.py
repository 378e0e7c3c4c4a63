from __future__ import annotations

from fastapi import APIRouter, Depends

from src.adapters.api.controllers.session import session_to_schema
from src.adapters.api.dependencies import get_session
from src.adapters.api.schemas.session import SessionSchema, WaypointSchema
from src.app.services.map_session import MapSession
from src.domain.models import GeoPoint

router = APIRouter(prefix="/route", tags=["route"])


@router.put("/start", response_model=SessionSchema)
def set_start(
    req: WaypointSchema, session: MapSession = Depends(get_session)
) -> SessionSchema:
    session.set_start(GeoPoint(lat=req.lat, lon=req.lon), req.description or "Start")
    return session_to_schema(session.snapshot())


@router.put("/end", response_model=SessionSchema)
def set_end(
    req: WaypointSchema, session: MapSession = Depends(get_session)
) -> SessionSchema:
    session.set_end(GeoPoint(lat=req.lat, lon=req.lon), req.description or "End")
    return session_to_schema(session.snapshot())


@router.post("/search", response_model=SessionSchema)
async def search_route(session: MapSession = Depends(get_session)) -> SessionSchema:
    await session.search_route()
    return session_to_schema(session.snapshot())


@router.delete("", response_model=SessionSchema)
def clear_route(session: MapSession = Depends(get_session)) -> SessionSchema:
    session.clear_route()
    return session_to_schema(session.snapshot())

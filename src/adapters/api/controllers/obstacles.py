from __future__ import annotations

from fastapi import APIRouter, Depends

from src.adapters.api.controllers.session import obstacle_to_schema, session_to_schema
from src.adapters.api.dependencies import get_session
from src.adapters.api.schemas.session import (
    ObstacleCreateSchema,
    ObstacleSchema,
    SessionSchema,
)
from src.app.services.map_session import MapSession

router = APIRouter(prefix="/obstacles", tags=["obstacles"])


@router.get("", response_model=list[ObstacleSchema])
def list_obstacles(session: MapSession = Depends(get_session)) -> list[ObstacleSchema]:
    return [obstacle_to_schema(ob) for ob in session.obstacles.get_snapshot()]


@router.post("", response_model=SessionSchema)
async def add_obstacle(
    req: ObstacleCreateSchema, session: MapSession = Depends(get_session)
) -> SessionSchema:
    await session.add_obstacle(
        lat=req.lat,
        lon=req.lon,
        radius_m=req.radius_m,
        name=req.name,
        description=req.description,
    )
    return session_to_schema(session.snapshot())


@router.post("/refresh", response_model=SessionSchema)
async def refresh_obstacles(session: MapSession = Depends(get_session)) -> SessionSchema:
    await session.refresh_obstacles()
    return session_to_schema(session.snapshot())


@router.delete("/{name}", response_model=SessionSchema)
async def remove_obstacle(
    name: str, session: MapSession = Depends(get_session)
) -> SessionSchema:
    await session.remove_obstacle(name)
    return session_to_schema(session.snapshot())

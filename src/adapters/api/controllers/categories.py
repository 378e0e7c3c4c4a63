from __future__ import annotations

from fastapi import APIRouter, Depends

from src.adapters.api.controllers.session import session_to_schema
from src.adapters.api.dependencies import get_session
from src.adapters.api.schemas.session import (
    CategorySelectionSchema,
    CategoryToggleSchema,
    SessionSchema,
)
from src.app.services.map_session import MapSession

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("/refresh", response_model=SessionSchema)
async def refresh_categories(session: MapSession = Depends(get_session)) -> SessionSchema:
    await session.refresh_categories()
    return session_to_schema(session.snapshot())


@router.post("/select", response_model=SessionSchema)
async def select_categories(
    req: CategorySelectionSchema, session: MapSession = Depends(get_session)
) -> SessionSchema:
    await session.select_categories(req.categories)
    return session_to_schema(session.snapshot())


@router.post("/select-all", response_model=SessionSchema)
async def select_all_categories(
    session: MapSession = Depends(get_session),
) -> SessionSchema:
    await session.select_all_categories()
    return session_to_schema(session.snapshot())


@router.post("/hide-all", response_model=SessionSchema)
def hide_all_categories(session: MapSession = Depends(get_session)) -> SessionSchema:
    session.hide_all_categories()
    return session_to_schema(session.snapshot())


@router.put("/{category}", response_model=SessionSchema)
async def toggle_category(
    category: str,
    req: CategoryToggleSchema,
    session: MapSession = Depends(get_session),
) -> SessionSchema:
    await session.toggle_category(category, req.checked)
    return session_to_schema(session.snapshot())

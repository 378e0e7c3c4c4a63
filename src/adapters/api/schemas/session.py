from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class WaypointSchema(GeoPointSchema):
    description: str | None = None


class ObstacleCreateSchema(BaseModel):
    # Plain floats: range and sign checks happen in the domain so the user
    # also gets a notice for them.
    lat: float
    lon: float
    radius_m: float = 200.0
    name: str
    description: str = ""


class ObstacleSchema(BaseModel):
    name: str
    lat: float
    lon: float
    radius_m: float | None = None
    description: str = ""


class RetrySchema(BaseModel):
    attempt_count: int
    max_attempts: int
    next_delay_s: float | None = None
    last_reason: str | None = None


class RouteStateSchema(BaseModel):
    state: Literal["idle", "requesting", "backoff_wait", "ready", "failed"]
    request_id: int
    in_flight: bool
    has_last_request: bool
    start: WaypointSchema | None = None
    end: WaypointSchema | None = None
    retry: RetrySchema
    route: dict[str, Any] | None = None


class LayersSchema(BaseModel):
    valid: list[str] = []
    selected: list[str] = []
    pending: list[str] = []
    visible: dict[str, Any] | None = None


class SessionSchema(BaseModel):
    status: Literal["unknown", "ready", "wait", "error"]
    status_error: str = ""
    transport_mode: Literal["car", "cycle", "walk"]
    obstacles: list[ObstacleSchema] = []
    pending_deletes: list[str] = []
    route: RouteStateSchema
    layers: LayersSchema


class TransportModeSchema(BaseModel):
    mode: Literal["car", "cycle", "walk"]


class CategoryToggleSchema(BaseModel):
    checked: bool = True


class CategorySelectionSchema(BaseModel):
    categories: list[str]


class NoticeSchema(BaseModel):
    id: str
    tone: Literal["good", "warn", "bad"]
    text: str
    created_at: datetime

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from src.adapters.http.geojson_codec import (
    FeatureCollectionWire,
    classify_route_payload,
    is_wait_signal,
    obstacle_create_body,
    parse_category_list,
    parse_obstacles,
    parse_status,
    route_body,
)
from src.app.ports.output import IRoutingGateway
from src.domain.exceptions import CategoryNotReady, GatewayError
from src.domain.models import (
    CategoryLayer,
    Obstacle,
    ObstacleSnapshot,
    RouteOutcome,
    ServerStatus,
    Waypoint,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001/api"

# endpoint -> (env var, default path)
_PATHS: dict[str, tuple[str, str]] = {
    "ready": ("PATH_READY", "/ready"),
    "blockage": ("PATH_BLOCKAGE", "/blockage"),
    "route": ("PATH_ROUTE", "/route"),
    "axis_type": ("PATH_AXIS_TYPE", "/axisType"),
    "valid_axis_types": ("PATH_VALID_AXIS_TYPES", "/validAxisTypes"),
    "all_axis_types": ("PATH_ALL_AXIS_TYPES", "/allAxisTypes"),
    "change_valid_road_types": ("PATH_CHANGE_VALID_ROAD_TYPES", "/changeValidRoadTypes"),
}

_ACCEPT = {"Accept": "application/json, text/plain, */*"}


def _decode(resp: httpx.Response) -> Any:
    content_type = resp.headers.get("content-type", "")
    if "application/json" in content_type or "geo+json" in content_type:
        try:
            return resp.json()
        except ValueError:
            return resp.text
    return resp.text


def _error_message(data: Any) -> str:
    if isinstance(data, str):
        return data.strip() or "Request failed"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return "Request failed"


@dataclass(slots=True)
class HttpRoutingGateway(IRoutingGateway):
    """Talks to the routing proxy over HTTP.

    Env vars:
      - ROUTING_API_BASE_URL (default: http://localhost:3001/api)
      - ROUTING_API_TIMEOUT_S (default: 30)
      - PATH_READY, PATH_BLOCKAGE, PATH_ROUTE, PATH_AXIS_TYPE,
        PATH_VALID_AXIS_TYPES, PATH_ALL_AXIS_TYPES,
        PATH_CHANGE_VALID_ROAD_TYPES: endpoint paths under the base URL

    Notes:
      - Replies are JSON or plain text; the engine answers "wait" in plain
        text while it is still preparing.
      - A new client is opened per call; ``transport`` is injectable.
    """

    base_url: str | None = None
    timeout_s: float = 30.0
    transport: httpx.AsyncBaseTransport | None = None
    paths: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.base_url is None:
            self.base_url = os.getenv("ROUTING_API_BASE_URL") or DEFAULT_BASE_URL
        if os.getenv("ROUTING_API_TIMEOUT_S"):
            self.timeout_s = float(os.environ["ROUTING_API_TIMEOUT_S"])

        resolved = {
            name: os.getenv(env_name) or default
            for name, (env_name, default) in _PATHS.items()
        }
        resolved.update(self.paths)
        self.paths = resolved

    def _url(self, name: str, suffix: str = "") -> str:
        return f"{(self.base_url or '').rstrip('/')}{self.paths[name]}{suffix}"

    async def _request(self, method: str, url: str, *, json: Any = None) -> Any:
        headers = dict(_ACCEPT)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self.transport
            ) as client:
                resp = await client.request(
                    method,
                    url,
                    json=json if method not in {"GET", "HEAD"} else None,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.warning("Routing API unreachable", extra={"url": url, "method": method})
            raise GatewayError(f"Failed to reach routing API: {exc}") from exc

        data = _decode(resp)
        if resp.is_error:
            raise GatewayError(_error_message(data), status_code=resp.status_code)
        return data

    async def readiness(self) -> tuple[ServerStatus, str]:
        data = await self._request("GET", self._url("ready"))
        return parse_status(data), str(data)

    async def list_obstacles(self) -> ObstacleSnapshot:
        data = await self._request("GET", self._url("blockage"))
        try:
            return parse_obstacles(data)
        except ValidationError as exc:
            raise GatewayError("Blockage API returned invalid data.") from exc

    async def create_obstacle(self, obstacle: Obstacle) -> None:
        await self._request("POST", self._url("blockage"), json=obstacle_create_body(obstacle))

    async def delete_obstacle(self, name: str) -> None:
        await self._request("DELETE", self._url("blockage", f"/{quote(name, safe='')}"))

    async def category_features(self, category: str) -> CategoryLayer:
        url = self._url("axis_type", f"/{quote(category, safe='')}")
        data = await self._request("GET", url)
        if is_wait_signal(data):
            raise CategoryNotReady(f"Road type layer '{category}' is still being prepared.")
        try:
            collection = FeatureCollectionWire.model_validate(data)
        except ValidationError as exc:
            raise GatewayError(f"Road type layer '{category}' returned invalid data.") from exc
        return CategoryLayer(
            category=category,
            features=tuple(f for f in collection.features if isinstance(f, dict)),
        )

    async def all_categories(self) -> tuple[str, ...]:
        return parse_category_list(await self._request("GET", self._url("all_axis_types")))

    async def valid_categories(self) -> tuple[str, ...]:
        return parse_category_list(await self._request("GET", self._url("valid_axis_types")))

    async def set_valid_categories(self, categories: Sequence[str]) -> None:
        await self._request(
            "POST", self._url("change_valid_road_types"), json=list(categories)
        )

    async def request_route(
        self, *, start: Waypoint, end: Waypoint, obstacles: ObstacleSnapshot
    ) -> RouteOutcome:
        data = await self._request(
            "POST",
            self._url("route"),
            json=route_body(start=start, end=end, obstacles=obstacles),
        )
        return classify_route_payload(data)

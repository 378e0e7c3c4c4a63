from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from src.domain.models import (
    CategoryLayer,
    Obstacle,
    ObstacleSnapshot,
    RouteOutcome,
    ServerStatus,
    Waypoint,
)


class IRoutingGateway(ABC):
    """Port for the remote routing API (reached through the HTTP proxy).

    Every method may raise ``GatewayError`` on transport failure.
    """

    @abstractmethod
    async def readiness(self) -> tuple[ServerStatus, str]:
        """Return the engine status plus the raw reply text."""

    @abstractmethod
    async def list_obstacles(self) -> ObstacleSnapshot:
        raise NotImplementedError

    @abstractmethod
    async def create_obstacle(self, obstacle: Obstacle) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete_obstacle(self, name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def category_features(self, category: str) -> CategoryLayer:
        """Fetch one category's geometry; raises ``CategoryNotReady`` on "wait"."""

    @abstractmethod
    async def all_categories(self) -> tuple[str, ...]:
        raise NotImplementedError

    @abstractmethod
    async def valid_categories(self) -> tuple[str, ...]:
        raise NotImplementedError

    @abstractmethod
    async def set_valid_categories(self, categories: Sequence[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def request_route(
        self, *, start: Waypoint, end: Waypoint, obstacles: ObstacleSnapshot
    ) -> RouteOutcome:
        raise NotImplementedError

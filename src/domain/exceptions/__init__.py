from .gateway import CategoryNotReady, GatewayError
from .obstacles import DuplicateObstacle, InvalidObstacle, ObstacleError

__all__ = [
    "CategoryNotReady",
    "DuplicateObstacle",
    "GatewayError",
    "InvalidObstacle",
    "ObstacleError",
]

class ObstacleError(Exception):
    """Base exception for rejected obstacle edits."""


class InvalidObstacle(ObstacleError, ValueError):
    """Raised when a candidate obstacle has bad coordinates, radius or name."""


class DuplicateObstacle(ObstacleError):
    """Raised when an obstacle with the same identity key already exists."""

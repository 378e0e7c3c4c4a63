class GatewayError(Exception):
    """Base exception for failed calls to the routing API."""

    retryable = False

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CategoryNotReady(GatewayError):
    """Raised when a category layer is still being prepared ("wait")."""

    retryable = True

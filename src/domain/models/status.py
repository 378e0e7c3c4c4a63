from __future__ import annotations

from enum import Enum


class ServerStatus(str, Enum):
    UNKNOWN = "unknown"
    READY = "ready"
    WAIT = "wait"
    ERROR = "error"

    def not_ready_message(self) -> str:
        if self is ServerStatus.WAIT:
            return "Server is warming up."
        if self is ServerStatus.ERROR:
            return "Server is unreachable (check connection)."
        return "Server status unknown. Please refresh."

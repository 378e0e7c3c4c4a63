from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

TimerCallback = Callable[[], Awaitable[None]]


class ITimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        """Cancel the timer; a no-op if it already fired."""


class IScheduler(ABC):
    """Clock port for debounce, retry and polling timers."""

    @abstractmethod
    def call_later(self, delay_s: float, callback: TimerCallback) -> ITimerHandle:
        """Run ``callback()`` after ``delay_s`` seconds on the event loop."""

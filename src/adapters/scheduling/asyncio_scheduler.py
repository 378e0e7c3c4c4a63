from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from src.app.ports.output import IScheduler, ITimerHandle, TimerCallback

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _AsyncioTimer(ITimerHandle):
    handle: asyncio.TimerHandle | None = None
    task: asyncio.Task[None] | None = None

    def cancel(self) -> None:
        if self.handle is not None:
            self.handle.cancel()
        # A fired timer's callback keeps running; it is not ours to abort.


@dataclass(slots=True)
class AsyncioScheduler(IScheduler):
    """Timers on the running event loop.

    Spawned callback tasks are held until they finish so they are not
    garbage-collected mid-flight.
    """

    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False, repr=False)

    def call_later(self, delay_s: float, callback: TimerCallback) -> ITimerHandle:
        loop = asyncio.get_running_loop()
        timer = _AsyncioTimer()

        def _fire() -> None:
            task = loop.create_task(self._run(callback))
            timer.task = task
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        timer.handle = loop.call_later(max(0.0, delay_s), _fire)
        return timer

    async def _run(self, callback: TimerCallback) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled callback failed")

    async def drain(self) -> None:
        """Wait for callbacks that already fired (used on shutdown)."""

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

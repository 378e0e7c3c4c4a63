from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class InFlightTable(Generic[K, T]):
    """At most one running task per key.

    The entry is inserted synchronously by ``start`` and removed once the task
    settles, whether it succeeded, failed or was cancelled.
    """

    def __init__(self) -> None:
        self._tasks: dict[K, asyncio.Task[T]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def keys(self) -> tuple[K, ...]:
        return tuple(self._tasks)

    def get(self, key: K) -> asyncio.Task[T] | None:
        return self._tasks.get(key)

    def start(self, key: K, factory: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        if key in self._tasks:
            raise RuntimeError(f"Request already in flight: {key!r}")

        async def _run() -> T:
            try:
                return await factory()
            finally:
                self._release(key, task)

        task = asyncio.ensure_future(_run())
        self._tasks[key] = task
        # Covers a task cancelled before its first step.
        task.add_done_callback(lambda t: self._release(key, t))
        return task

    def _release(self, key: K, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

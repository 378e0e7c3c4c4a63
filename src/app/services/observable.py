from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

S = TypeVar("S")

logger = logging.getLogger(__name__)

Listener = Callable[[S], None]


class Observable(Generic[S]):
    """Subscribe/notify hub for services that expose read-only snapshots."""

    def __init__(self) -> None:
        self._listeners: list[Listener[S]] = []

    def subscribe(self, listener: Listener[S]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, snapshot: S) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")

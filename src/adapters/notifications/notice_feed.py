from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from src.app.ports.output import INotifier
from src.domain.models import Notice, Tone

logger = logging.getLogger(__name__)

_LEVELS = {Tone.GOOD: logging.INFO, Tone.WARN: logging.WARNING, Tone.BAD: logging.ERROR}


@dataclass(slots=True)
class NoticeFeed(INotifier):
    """Keeps the most recent notices for the UI to display as toasts.

    Env vars:
      - NOTICE_TTL_S: seconds a notice stays visible (default 3)
    """

    ttl_s: float | None = None
    max_items: int = 50

    _items: deque[Notice] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.ttl_s is None:
            self.ttl_s = float(os.getenv("NOTICE_TTL_S") or 3.0)
        self._items = deque(maxlen=self.max_items)

    def notify(self, tone: Tone, text: str) -> None:
        notice = Notice(
            id=str(uuid4()), tone=tone, text=text, created_at=datetime.now(timezone.utc)
        )
        self._items.append(notice)
        logger.log(_LEVELS.get(tone, logging.INFO), text, extra={"tone": tone.value})

    def recent(self, *, now: datetime | None = None) -> tuple[Notice, ...]:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self.ttl_s or 0.0)
        while self._items and self._items[0].created_at < cutoff:
            self._items.popleft()
        return tuple(self._items)

    def dismiss(self, notice_id: str) -> bool:
        for notice in self._items:
            if notice.id == notice_id:
                self._items.remove(notice)
                return True
        return False

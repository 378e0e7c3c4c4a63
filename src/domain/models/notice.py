from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Tone(str, Enum):
    GOOD = "good"
    WARN = "warn"
    BAD = "bad"


@dataclass(frozen=True, slots=True)
class Notice:
    id: str
    tone: Tone
    text: str
    created_at: datetime

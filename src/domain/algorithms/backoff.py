from __future__ import annotations

from typing import Sequence

# Delay before retry N (0-based); attempts past the end reuse the last value.
RETRY_DELAYS_MS: tuple[int, ...] = (300, 700, 1200, 2000, 3000)


def retry_delay_s(attempt: int, schedule_ms: Sequence[int] = RETRY_DELAYS_MS) -> float:
    if not schedule_ms:
        return 0.0
    idx = max(0, min(int(attempt), len(schedule_ms) - 1))
    return schedule_ms[idx] / 1000.0

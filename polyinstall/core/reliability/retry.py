"""
Retry backoff — exponential delay with jitter.
"""

from __future__ import annotations

import random

MAX_DELAY = 60.0


def backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = MAX_DELAY,
) -> float:
    """Seconds to wait before retry number ``attempt`` (1-based).

    ``min(base * 2^(attempt-1), max)`` plus up to 30% jitter.
    """
    if base_delay <= 0:
        return 0.0
    delay = min(base_delay * (2 ** (max(attempt, 1) - 1)), max_delay)
    jitter = random.uniform(0, delay * 0.3)
    return delay + jitter

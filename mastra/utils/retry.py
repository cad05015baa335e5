from __future__ import annotations

import asyncio


def compute_backoff(attempt: int, delay: float, backoff: float = 1.0) -> float:
    """Compute the wait before retry number ``attempt`` (1-based)."""
    if delay <= 0:
        return 0.0
    return delay * backoff ** max(attempt - 1, 0)


async def schedule_retry(attempt: int, delay: float, backoff: float = 1.0) -> None:
    """Sleep for the computed backoff delay before retrying."""
    wait = compute_backoff(attempt, delay, backoff)
    if wait:
        await asyncio.sleep(wait)

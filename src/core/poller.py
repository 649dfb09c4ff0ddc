"""Fixed-rate catalog polling with overlap protection."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import AsyncIterator, Awaitable, Callable, Optional

from core.models import Snapshot

LOGGER = logging.getLogger(__name__)


def _next_tick(scheduled: float, now: float, interval: float) -> float:
    """Return the first tick on the fixed grid strictly after ``now``."""

    if now < scheduled:
        return scheduled
    missed = math.floor((now - scheduled) / interval) + 1
    return scheduled + missed * interval


async def poll(
    fetch: Callable[[], Awaitable[Snapshot]],
    interval_seconds: float,
) -> AsyncIterator[Snapshot]:
    """Fetch on a fixed timer and yield snapshots that differ from the last one.

    Ticks falling due while a fetch, or the downstream handling of its
    result, is still running are dropped rather than queued. The first fetch
    happens one interval after the stream starts. Fetch errors propagate.
    """

    loop = asyncio.get_running_loop()
    last: Optional[Snapshot] = None
    scheduled = loop.time() + interval_seconds
    while True:
        await asyncio.sleep(max(0.0, scheduled - loop.time()))
        snapshot = await fetch()
        if snapshot != last:
            last = snapshot
            yield snapshot
        else:
            LOGGER.debug("Catalog unchanged (%s items)", len(snapshot))

        upcoming = _next_tick(scheduled + interval_seconds, loop.time(), interval_seconds)
        dropped = round((upcoming - scheduled) / interval_seconds) - 1
        if dropped > 0:
            LOGGER.debug("Dropped %s poll tick(s) while busy", dropped)
        scheduled = upcoming

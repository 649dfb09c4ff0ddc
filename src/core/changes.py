"""Snapshot-to-snapshot change detection (core domain)."""

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator

from core.models import Item, Snapshot


async def added_items(snapshots: AsyncIterable[Snapshot]) -> AsyncIterator[Item]:
    """Yield every item that is in a snapshot but not in the one before it.

    The baseline is the empty snapshot, so everything in the first snapshot is
    reported as new. Comparison is structural: an item whose price changed is
    a new item here, and it is up to deduplication to decide whether it gets
    reported again.
    """

    previous: Snapshot = frozenset()
    async for snapshot in snapshots:
        for item in snapshot - previous:
            yield item
        previous = snapshot

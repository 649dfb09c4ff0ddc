"""Fan-out of new items and search requests to chat recipients (core domain)."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from core.models import Item, ItemAlert, NotificationJob, Search, SearchResults, Snapshot
from core.streams import LatestValue
from core.subscriptions import SubscriptionSet

LOGGER = logging.getLogger(__name__)


def matches_filter(text: str, filter_text: str) -> bool:
    return filter_text.lower() in text.lower()


def search_items(snapshot: Snapshot, filter_text: str) -> Tuple[Item, ...]:
    """Items whose title contains the filter, ordered by title."""

    found = (item for item in snapshot if matches_filter(item.title, filter_text))
    return tuple(sorted(found, key=lambda item: (item.title.lower(), item.key)))


class Router:
    """Joins events against the latest subscriptions and catalog snapshot.

    Both joins are last-value-wins: the router never buffers events waiting
    for the other side, it only looks at what is in the cells right now.
    """

    def __init__(
        self,
        subscriptions: LatestValue[SubscriptionSet],
        snapshots: LatestValue[Snapshot],
    ) -> None:
        self._subscriptions = subscriptions
        self._snapshots = snapshots

    def route(self, item: Item) -> List[NotificationJob]:
        """Return one alert job per subscription whose filter matches the item.

        Items arriving before any subscription set was observed are dropped.
        """

        subscriptions = self._subscriptions.get()
        if not subscriptions:
            return []

        blurb = item.blurb_text
        return [
            NotificationJob(chat_id=subscription.chat_id, notification=ItemAlert(item))
            for subscription in sorted(subscriptions, key=lambda sub: (sub.chat_id, sub.filter_text))
            if matches_filter(blurb, subscription.filter_text)
        ]

    def search(self, command: Search) -> Optional[NotificationJob]:
        """Answer a search from the latest snapshot, or None before the first poll."""

        snapshot = self._snapshots.get()
        if snapshot is None:
            LOGGER.info("Search from %s ignored, no catalog yet", command.chat_id)
            return None

        return NotificationJob(
            chat_id=command.chat_id,
            notification=SearchResults(
                filter_text=command.filter_text,
                items=search_items(snapshot, command.filter_text),
            ),
        )

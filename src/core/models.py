"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the catalog JSON or the Telegram Bot API payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union


@dataclass(frozen=True)
class Item:
    """A single catalog record.

    Equality is structural over every field, so a price change produces a
    different item. ``key`` is the stable identity used for deduplication.
    """

    key: str
    title: str
    price: Optional[str] = None
    discount_text: Optional[str] = None
    location: Optional[str] = None
    url_path: Optional[str] = None

    @property
    def blurb_text(self) -> str:
        parts = [self.title, self.price, self.discount_text, self.location]
        return " - ".join(part if part else "n/a" for part in parts)


# The whole catalog as observed at one poll tick.
Snapshot = FrozenSet[Item]


@dataclass(frozen=True)
class Subscription:
    """A chat that wants alerts for items matching ``filter_text``."""

    chat_id: int
    filter_text: str


@dataclass(frozen=True)
class Subscribe:
    chat_id: int
    filter_text: str


@dataclass(frozen=True)
class Unsubscribe:
    chat_id: int
    filter_text: str


@dataclass(frozen=True)
class Search:
    chat_id: int
    filter_text: str


@dataclass(frozen=True)
class Help:
    chat_id: int


Command = Union[Subscribe, Unsubscribe, Search, Help]


class ReplyKind(Enum):
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    INVALID_FILTER = "invalid_filter"
    HELP = "help"


@dataclass(frozen=True)
class ItemAlert:
    item: Item


@dataclass(frozen=True)
class SearchResults:
    filter_text: str
    items: Tuple[Item, ...]


@dataclass(frozen=True)
class CommandReply:
    kind: ReplyKind
    filter_text: str = ""


Notification = Union[ItemAlert, SearchResults, CommandReply]


@dataclass(frozen=True)
class NotificationJob:
    """One outbound message for one recipient."""

    chat_id: int
    notification: Notification

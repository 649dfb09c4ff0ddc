"""Subscription validation and the persisted subscription set."""

from __future__ import annotations

import re
from typing import AsyncIterable, AsyncIterator, FrozenSet, Union

from core.accumulator import PersistentAccumulator
from core.models import Subscribe, Subscription, Unsubscribe
from core.ports import StatePort

MIN_FILTER_LENGTH = 3
MAX_FILTER_LENGTH = 255

_WORD_CHARS = re.compile(r"\w*", re.ASCII)

SubscriptionSet = FrozenSet[Subscription]
SubscriptionCommand = Union[Subscribe, Unsubscribe]


def is_valid_filter(text: str) -> bool:
    """A filter is 3-255 ASCII word characters (letters, digits, underscore)."""

    return MIN_FILTER_LENGTH <= len(text) <= MAX_FILTER_LENGTH and bool(_WORD_CHARS.fullmatch(text))


def apply_command(subscriptions: SubscriptionSet, command: SubscriptionCommand) -> SubscriptionSet:
    subscription = Subscription(chat_id=command.chat_id, filter_text=command.filter_text)
    if isinstance(command, Unsubscribe):
        return subscriptions - {subscription}
    return subscriptions | {subscription}


class SubscriptionStore:
    """Accumulates validated subscribe/unsubscribe commands durably.

    Callers must validate filters first; the store trusts what it folds.
    """

    def __init__(self, state: StatePort[SubscriptionSet], flush_interval_seconds: float) -> None:
        self._accumulator: PersistentAccumulator[SubscriptionSet, SubscriptionCommand] = PersistentAccumulator(
            state,
            frozenset(),
            apply_command,
            flush_interval_seconds,
            name="subscriptions",
        )

    def run(self, commands: AsyncIterable[SubscriptionCommand]) -> AsyncIterator[SubscriptionSet]:
        """Yield the stored set, then the updated set after every command."""

        return self._accumulator.run(commands)

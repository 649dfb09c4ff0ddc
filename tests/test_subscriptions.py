from __future__ import annotations

import asyncio

from adapters.json_storage import subscriptions_state
from core.models import Subscribe, Subscription, Unsubscribe
from core.subscriptions import SubscriptionStore, apply_command, is_valid_filter


def test_filter_length_bounds() -> None:
    assert not is_valid_filter("")
    assert not is_valid_filter("so")
    assert is_valid_filter("sof")
    assert is_valid_filter("a" * 255)
    assert not is_valid_filter("a" * 256)


def test_filter_must_be_word_characters() -> None:
    assert is_valid_filter("sofa")
    assert is_valid_filter("sofa_2")
    assert not is_valid_filter("grey sofa")
    assert not is_valid_filter("sofa!")
    assert not is_valid_filter("a/b")
    assert not is_valid_filter("stål")
    assert not is_valid_filter("sofa²")


def test_fold_adds_and_removes() -> None:
    subscriptions = apply_command(frozenset(), Subscribe(1, "sofa"))
    subscriptions = apply_command(subscriptions, Subscribe(1, "sofa"))
    subscriptions = apply_command(subscriptions, Subscribe(2, "lamp"))
    assert subscriptions == {Subscription(1, "sofa"), Subscription(2, "lamp")}

    subscriptions = apply_command(subscriptions, Unsubscribe(1, "sofa"))
    assert subscriptions == {Subscription(2, "lamp")}

    # Removing something that is not there is a no-op.
    assert apply_command(subscriptions, Unsubscribe(3, "chair")) == subscriptions


def test_store_persists_across_restarts(tmp_path) -> None:
    async def commands(*items):
        for item in items:
            yield item

    def run(*items):
        store = SubscriptionStore(subscriptions_state(str(tmp_path)), flush_interval_seconds=60)

        async def collect():
            return [value async for value in store.run(commands(*items))]

        return asyncio.run(collect())

    first = run(Subscribe(1, "sofa"), Subscribe(2, "lamp"))
    assert first == [
        frozenset(),
        {Subscription(1, "sofa")},
        {Subscription(1, "sofa"), Subscription(2, "lamp")},
    ]

    second = run(Unsubscribe(2, "lamp"))
    assert second == [
        {Subscription(1, "sofa"), Subscription(2, "lamp")},
        {Subscription(1, "sofa")},
    ]

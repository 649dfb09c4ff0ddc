from __future__ import annotations

from core.models import Item, ItemAlert, NotificationJob, Search, SearchResults, Subscription
from core.router import Router, search_items
from core.streams import LatestValue

SOFA = Item(key="1", title="Grey Sofa", price="4999", discount_text="-50%", location="Oslo", url_path="grey-sofa")
LAMP = Item(key="2", title="Lamp", price="299", location="Bergen")
SOFA_TABLE = Item(key="3", title="Sofa table", price="1999")


def _router(subscriptions=None, snapshot=None) -> Router:
    subscription_cell: LatestValue = LatestValue()
    snapshot_cell: LatestValue = LatestValue()
    if subscriptions is not None:
        subscription_cell.set(frozenset(subscriptions))
    if snapshot is not None:
        snapshot_cell.set(frozenset(snapshot))
    return Router(subscription_cell, snapshot_cell)


def test_matching_item_fans_out_to_subscriber() -> None:
    router = _router({Subscription(1, "sofa")})

    assert router.route(SOFA) == [NotificationJob(chat_id=1, notification=ItemAlert(SOFA))]
    assert router.route(LAMP) == []


def test_every_matching_subscription_gets_a_job() -> None:
    router = _router({Subscription(1, "sofa"), Subscription(2, "SOFA"), Subscription(3, "lamp")})

    jobs = router.route(SOFA)
    assert [job.chat_id for job in jobs] == [1, 2]


def test_filter_matches_blurb_fields() -> None:
    router = _router({Subscription(7, "bergen")})

    assert [job.chat_id for job in router.route(LAMP)] == [7]


def test_no_subscriptions_yet_drops_items() -> None:
    router = _router()
    assert router.route(SOFA) == []


def test_empty_subscription_set_drops_items() -> None:
    router = _router(set())
    assert router.route(SOFA) == []


def test_search_before_first_snapshot_is_ignored() -> None:
    router = _router()
    assert router.search(Search(1, "sofa")) is None


def test_search_lists_title_matches() -> None:
    router = _router(snapshot={SOFA, LAMP, SOFA_TABLE})

    job = router.search(Search(5, "sofa"))

    assert job == NotificationJob(chat_id=5, notification=SearchResults("sofa", (SOFA, SOFA_TABLE)))


def test_search_items_ignores_other_fields() -> None:
    # Oslo is only in the location, searches look at titles.
    assert search_items(frozenset({SOFA, LAMP}), "oslo") == ()

from __future__ import annotations

import asyncio

from core.streams import Broadcast, LatestValue, retry_forever


def test_broadcast_late_subscriber_sees_only_future_values() -> None:
    async def scenario():
        bus: Broadcast[int] = Broadcast()
        early = bus.subscribe()
        await bus.publish(1)
        late = bus.subscribe()
        await bus.publish(2)
        await bus.close()
        return [value async for value in early], [value async for value in late]

    early, late = asyncio.run(scenario())
    assert early == [1, 2]
    assert late == [2]


def test_broadcast_subscribe_after_close_ends_immediately() -> None:
    async def scenario():
        bus: Broadcast[int] = Broadcast()
        await bus.close()
        return [value async for value in bus.subscribe()]

    assert asyncio.run(scenario()) == []


def test_bounded_broadcast_waits_for_slow_subscriber() -> None:
    async def scenario():
        bus: Broadcast[int] = Broadcast(maxsize=1)
        stream = bus.subscribe()
        await bus.publish(1)
        blocked = asyncio.create_task(bus.publish(2))
        await asyncio.sleep(0.01)
        was_blocked = not blocked.done()
        first = await stream.__anext__()
        await blocked
        second = await stream.__anext__()
        return was_blocked, first, second

    assert asyncio.run(scenario()) == (True, 1, 2)


def test_latest_value_keeps_most_recent() -> None:
    async def scenario():
        cell: LatestValue[str] = LatestValue()
        before = (cell.has_value, cell.get())
        cell.set("a")
        cell.set("b")
        return before, cell.has_value, await cell.wait()

    before, has_value, latest = asyncio.run(scenario())
    assert before == (False, None)
    assert has_value
    assert latest == "b"


def test_retry_forever_resubscribes_after_failure() -> None:
    attempts = 0

    def factory():
        async def stream():
            nonlocal attempts
            attempts += 1
            yield attempts
            if attempts < 3:
                raise RuntimeError("boom")

        return stream()

    async def scenario():
        return [value async for value in retry_forever(factory, 0, "test stream")]

    assert asyncio.run(scenario()) == [1, 2, 3]
    assert attempts == 3

"""Stream primitives shared by the pipeline stages.

- ``Broadcast``: one producer, many independent subscriber queues.
- ``LatestValue``: holds the most recent value of a stream for
  latest-value joins.
- ``retry_forever``: re-subscribes to a failing stream after a fixed delay.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Callable, Generic, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Broadcast(Generic[T]):
    """Async fan-out channel backed by ``asyncio.Queue``.

    Every subscriber gets its own queue so a slow consumer never blocks the
    others. A subscriber only sees values published after it subscribed.
    With a bounded ``maxsize`` a full subscriber queue makes ``publish`` wait,
    which pushes back on the producer instead of dropping values.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._subscribers: list[asyncio.Queue] = []
        self._maxsize = maxsize
        self._closed = False

    def subscribe(self) -> AsyncIterator[T]:
        """Register a subscriber now and return its value stream.

        Registration happens eagerly so no value published between this call
        and the first iteration is missed.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._subscribers.append(queue)
        return self._drain(queue)

    async def _drain(self, queue: asyncio.Queue) -> AsyncIterator[T]:
        try:
            while True:
                value = await queue.get()
                if value is _CLOSED:
                    return
                yield value
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

    async def publish(self, value: T) -> None:
        """Publish a value to every subscriber queue."""
        if self._closed:
            raise RuntimeError("Broadcast is closed")
        for queue in list(self._subscribers):
            await queue.put(value)

    async def close(self) -> None:
        """End every subscriber stream after the values already queued."""
        self._closed = True
        for queue in list(self._subscribers):
            await queue.put(_CLOSED)


class LatestValue(Generic[T]):
    """Cell holding the most recent value seen on a stream.

    All access happens on the event loop thread, so plain attribute
    assignment is atomic with respect to readers.
    """

    def __init__(self) -> None:
        self._value: Optional[T] = None
        self._has_value = False
        self._ready = asyncio.Event()

    def set(self, value: T) -> None:
        self._value = value
        self._has_value = True
        self._ready.set()

    def get(self) -> Optional[T]:
        """Return the latest value, or None if nothing was observed yet."""
        return self._value

    @property
    def has_value(self) -> bool:
        return self._has_value

    async def wait(self) -> T:
        await self._ready.wait()
        return self._value  # type: ignore[return-value]


async def retry_forever(
    factory: Callable[[], AsyncIterator[T]],
    delay_seconds: float,
    name: str,
) -> AsyncIterator[T]:
    """Yield from ``factory()`` and start a fresh stream after every failure.

    Completion of the inner stream ends this stream too. Cancellation is not
    an error and is never retried.
    """

    while True:
        try:
            async with aclosing(factory()) as stream:
                async for value in stream:
                    yield value
            return
        except Exception:
            LOGGER.exception("%s failed. Will retry in %ss", name, delay_seconds)
        await asyncio.sleep(delay_seconds)

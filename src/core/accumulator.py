"""Durable fold over an async event stream.

The accumulator loads its previous value once, folds every incoming event
into it and yields the running value. A background flusher writes the latest
value to storage on a fixed cadence, and a final flush runs when the stream
completes, fails, is closed or is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable, Generic, Optional, TypeVar

from core.ports import StatePort

LOGGER = logging.getLogger(__name__)

A = TypeVar("A")
E = TypeVar("E")

_NOTHING = object()


class PersistentAccumulator(Generic[A, E]):
    """Generic persisted fold, reused for subscriptions and processed keys.

    Values must be immutable (frozensets, tuples, frozen dataclasses): the
    writer thread serializes a value while the fold keeps producing new ones.
    When the state port stores only part of the value, ``stored_part``
    extracts that part so a flush is skipped while it is unchanged.
    """

    def __init__(
        self,
        state: StatePort[A],
        default: A,
        fold: Callable[[A, E], A],
        flush_interval_seconds: float,
        name: str = "state",
        stored_part: Optional[Callable[[A], Any]] = None,
    ) -> None:
        self._state = state
        self._default = default
        self._fold = fold
        self._flush_interval = flush_interval_seconds
        self._name = name
        self._stored_part = stored_part
        self._latest: object = _NOTHING
        self._persisted: object = _NOTHING
        self._inflight: Optional[asyncio.Task] = None

    async def _load(self) -> A:
        try:
            loaded = await asyncio.to_thread(self._state.load)
        except Exception:
            # Ports should return None, but any read failure means "absent".
            LOGGER.debug("Could not load %s, using default", self._name, exc_info=True)
            loaded = None
        if loaded is None:
            LOGGER.info("No stored %s, starting from default", self._name)
            return self._default
        self._persisted = loaded
        return loaded

    async def _write(self, value: A) -> None:
        try:
            await asyncio.to_thread(self._state.save, value)
        except Exception:
            LOGGER.exception("Failed to persist %s", self._name)
            return
        self._persisted = value
        LOGGER.debug("Persisted %s", self._name)

    def _stored(self, value: object) -> object:
        if value is _NOTHING or self._stored_part is None:
            return value
        return self._stored_part(value)  # type: ignore[arg-type]

    async def flush(self) -> None:
        """Persist the latest value unless it is already stored.

        A flush that arrives while a write is running waits for that write and
        then re-checks, so at most one write is ever in flight.
        """

        while self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)
        value = self._latest
        if value is _NOTHING or self._stored(value) == self._stored(self._persisted):
            return
        self._inflight = asyncio.ensure_future(self._write(value))  # type: ignore[arg-type]
        await asyncio.shield(self._inflight)

    async def _flush_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._flush_interval)
            await self.flush()

    async def run(self, source: AsyncIterable[E]) -> AsyncIterator[A]:
        """Yield the loaded value, then the accumulated value after each event."""

        value = await self._load()
        self._latest = value
        flusher = asyncio.create_task(self._flush_periodically(), name=f"flush-{self._name}")
        try:
            yield value
            async for event in source:
                value = self._fold(value, event)
                self._latest = value
                yield value
        finally:
            flusher.cancel()
            await asyncio.gather(flusher, return_exceptions=True)
            await self.flush()

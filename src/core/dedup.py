"""Persistent deduplication of items by identity key (core domain)."""

from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterable, AsyncIterator, Callable, FrozenSet, Hashable, Optional, Tuple, TypeVar

from core.accumulator import PersistentAccumulator
from core.ports import StatePort

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

DedupState = Tuple[Optional[T], FrozenSet[K]]


class _KeySetState:
    """Exposes a key-set store as storage for the (item, keys) fold state."""

    def __init__(self, keys: StatePort[FrozenSet[K]]) -> None:
        self._keys = keys

    def load(self) -> Optional[DedupState]:
        known = self._keys.load()
        if known is None:
            return None
        return None, frozenset(known)

    def save(self, value: DedupState) -> None:
        self._keys.save(value[1])


def _seen_keys(state: DedupState) -> FrozenSet[K]:
    return state[1]


def _remember(key_of: Callable[[T], K]) -> Callable[[DedupState, T], DedupState]:
    def fold(state: DedupState, value: T) -> DedupState:
        _, seen = state
        key = key_of(value)
        if key in seen:
            return None, seen
        return value, seen | {key}

    return fold


async def dedupe(
    source: AsyncIterable[T],
    keys: StatePort[FrozenSet[K]],
    key_of: Callable[[T], K],
    flush_interval_seconds: float,
    default: FrozenSet[K] = frozenset(),
    name: str = "processed keys",
) -> AsyncIterator[T]:
    """Yield each value whose key has never passed through before.

    Seen keys are persisted through ``keys`` and reloaded on the next start,
    so values reported before a restart stay suppressed. Only keys are
    stored, never the values themselves.
    """

    accumulator: PersistentAccumulator[DedupState, T] = PersistentAccumulator(
        _KeySetState(keys),
        (None, frozenset(default)),
        _remember(key_of),
        flush_interval_seconds,
        name=name,
        stored_part=_seen_keys,
    )
    async with aclosing(accumulator.run(source)) as states:
        async for value, _ in states:
            if value is not None:
                yield value

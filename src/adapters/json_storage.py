"""JSON file storage adapter.

Implements the core StatePort with one JSON document per accumulator.
Writes go to a temporary file in the same directory that is then renamed over
the target, so readers only ever see a complete document.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Callable, FrozenSet, Generic, Optional, TypeVar

from core.models import Subscription

LOGGER = logging.getLogger(__name__)

A = TypeVar("A")


class JsonFileState(Generic[A]):
    """Thin JSON file wrapper that satisfies the StatePort contract."""

    def __init__(
        self,
        path: str,
        encode: Callable[[A], Any],
        decode: Callable[[Any], A],
    ) -> None:
        self._path = path
        self._encode = encode
        self._decode = decode

    def load(self) -> Optional[A]:
        """Return the stored value, or None if missing, empty or corrupt."""

        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                raw = handle.read()
        except FileNotFoundError:
            return None
        except OSError:
            LOGGER.debug("Could not read %s", self._path, exc_info=True)
            return None

        if not raw.strip():
            return None
        try:
            return self._decode(json.loads(raw))
        except (ValueError, TypeError, KeyError):
            LOGGER.debug("Ignoring unreadable state file %s", self._path, exc_info=True)
            return None

    def save(self, value: A) -> None:
        """Atomically replace the file with the encoded value."""

        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        LOGGER.debug("Writing to %s", self._path)
        fd, tmp_path = tempfile.mkstemp(
            dir=directory,
            prefix=f".{os.path.basename(self._path)}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._encode(value), handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


def encode_keys(keys: FrozenSet[str]) -> list[str]:
    return sorted(keys)


def decode_keys(raw: Any) -> FrozenSet[str]:
    if not isinstance(raw, list):
        raise TypeError("expected a JSON list of keys")
    return frozenset(str(key) for key in raw)


def encode_subscriptions(subscriptions: FrozenSet[Subscription]) -> list[dict]:
    ordered = sorted(subscriptions, key=lambda sub: (sub.chat_id, sub.filter_text))
    return [{"chat_id": sub.chat_id, "filter": sub.filter_text} for sub in ordered]


def decode_subscriptions(raw: Any) -> FrozenSet[Subscription]:
    if not isinstance(raw, list):
        raise TypeError("expected a JSON list of subscriptions")
    return frozenset(
        Subscription(chat_id=int(entry["chat_id"]), filter_text=str(entry["filter"]))
        for entry in raw
    )


def processed_keys_state(state_dir: str) -> JsonFileState[FrozenSet[str]]:
    return JsonFileState(os.path.join(state_dir, "processed_records.json"), encode_keys, decode_keys)


def subscriptions_state(state_dir: str) -> JsonFileState[FrozenSet[Subscription]]:
    return JsonFileState(os.path.join(state_dir, "subscriptions.json"), encode_subscriptions, decode_subscriptions)

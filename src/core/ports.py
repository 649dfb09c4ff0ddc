"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, catalog, chat and notification
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional, Protocol, TypeVar

from core.models import Command, NotificationJob, Snapshot

A = TypeVar("A")


class StatePort(Protocol[A]):
    """Durable storage for one accumulated value."""

    def load(self) -> Optional[A]:
        """Return the stored value, or None when absent or unreadable."""
        ...

    def save(self, value: A) -> None:
        ...


class CatalogPort(Protocol):
    """Fetches the full catalog once."""

    async def fetch(self) -> Snapshot:
        ...


class CommandSourcePort(Protocol):
    """Stream of parsed chat commands."""

    def commands(self) -> AsyncIterator[Command]:
        ...


class NotifierPort(Protocol):
    """Notification operations required by the core pipeline."""

    async def send(self, job: NotificationJob) -> None:
        ...

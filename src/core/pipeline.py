"""The watcher pipeline: poll -> diff -> dedup -> fan-out.

The pipeline only relies on ports, so the catalog, chat platform and
storage can be swapped without changes here. Its shape:

    catalog poll --(broadcast)--> added_items -> dedupe -> Router -> jobs
                 +--> latest snapshot cell <-- search commands
    chat commands --(broadcast)--> SubscriptionStore -> latest subscriptions
                                +--> search / help replies
    jobs --(bounded queue)--> delivery workers -> notifier

Jobs still queued when the process stops are lost, after their items were
already recorded as processed. That is the known loss window of the
at-least-once delivery.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, FrozenSet

from core.changes import added_items
from core.config import PipelineConfig
from core.dedup import dedupe
from core.models import (
    Command,
    CommandReply,
    Help,
    Item,
    NotificationJob,
    ReplyKind,
    Search,
    Snapshot,
    Subscribe,
    Unsubscribe,
)
from core.poller import poll
from core.ports import CatalogPort, CommandSourcePort, NotifierPort, StatePort
from core.router import Router
from core.streams import Broadcast, LatestValue, retry_forever
from core.subscriptions import SubscriptionCommand, SubscriptionSet, SubscriptionStore, is_valid_filter

LOGGER = logging.getLogger(__name__)


def item_key(item: Item) -> str:
    return item.key


class WatchPipeline:
    """Owns the streams, cells and tasks of one running watcher."""

    def __init__(
        self,
        catalog: CatalogPort,
        command_source: CommandSourcePort,
        notifier: NotifierPort,
        processed_state: StatePort[FrozenSet[str]],
        subscription_state: StatePort[SubscriptionSet],
        config: PipelineConfig,
    ) -> None:
        self._catalog = catalog
        self._command_source = command_source
        self._notifier = notifier
        self._processed_state = processed_state
        self._subscription_store = SubscriptionStore(subscription_state, config.flush_interval_seconds)
        self._config = config

        self._snapshots: Broadcast[Snapshot] = Broadcast()
        self._commands: Broadcast[Command] = Broadcast()
        self._latest_snapshot: LatestValue[Snapshot] = LatestValue()
        self._latest_subscriptions: LatestValue[SubscriptionSet] = LatestValue()
        self._router = Router(self._latest_subscriptions, self._latest_snapshot)
        self._jobs: asyncio.Queue[NotificationJob] = asyncio.Queue(maxsize=config.delivery_queue_size)

    @property
    def latest_subscriptions(self) -> LatestValue[SubscriptionSet]:
        return self._latest_subscriptions

    @property
    def latest_snapshot(self) -> LatestValue[Snapshot]:
        return self._latest_snapshot

    async def run(self) -> None:
        """Run every stage until cancelled."""

        # Subscribe before any producer starts so no early value is missed.
        snapshots = self._snapshots.subscribe()
        subscription_commands = self._commands.subscribe()
        other_commands = self._commands.subscribe()

        tasks = [
            asyncio.create_task(self._alert_new_items(snapshots), name="alerts"),
            asyncio.create_task(self._track_subscriptions(subscription_commands), name="subscriptions"),
            asyncio.create_task(self._answer_commands(other_commands), name="commands"),
            *(
                asyncio.create_task(self._deliver(), name=f"delivery-{index}")
                for index in range(self._config.delivery_workers)
            ),
            asyncio.create_task(self._publish_snapshots(), name="catalog-poller"),
            asyncio.create_task(self._publish_commands(), name="chat-updates"),
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            LOGGER.info("Pipeline stopped")

    async def _publish_snapshots(self) -> None:
        stream = retry_forever(
            lambda: poll(self._catalog.fetch, self._config.poll_interval_seconds),
            self._config.retry_delay_seconds,
            "Catalog polling",
        )
        async for snapshot in stream:
            LOGGER.info("Catalog changed: %s items", len(snapshot))
            self._latest_snapshot.set(snapshot)
            await self._snapshots.publish(snapshot)
        await self._snapshots.close()

    async def _publish_commands(self) -> None:
        stream = retry_forever(
            self._command_source.commands,
            self._config.retry_delay_seconds,
            "Receiving chat updates",
        )
        async for command in stream:
            LOGGER.info("Command received: %s", command)
            await self._commands.publish(command)
        await self._commands.close()

    async def _alert_new_items(self, snapshots: AsyncIterable[Snapshot]) -> None:
        new_items = dedupe(
            added_items(snapshots),
            self._processed_state,
            key_of=item_key,
            flush_interval_seconds=self._config.flush_interval_seconds,
            name="processed records",
        )
        async for item in new_items:
            LOGGER.info("New item on sale: %s (%s)", item.blurb_text, item.key)
            for job in self._router.route(item):
                await self._enqueue(job)

    async def _accepted_subscription_commands(
        self, commands: AsyncIterable[Command]
    ) -> AsyncIterator[SubscriptionCommand]:
        async for command in commands:
            if not isinstance(command, (Subscribe, Unsubscribe)):
                continue
            if not is_valid_filter(command.filter_text):
                await self._reply(command.chat_id, ReplyKind.INVALID_FILTER, command.filter_text)
                continue
            kind = ReplyKind.SUBSCRIBED if isinstance(command, Subscribe) else ReplyKind.UNSUBSCRIBED
            await self._reply(command.chat_id, kind, command.filter_text)
            yield command

    async def _track_subscriptions(self, commands: AsyncIterable[Command]) -> None:
        async for subscriptions in self._subscription_store.run(self._accepted_subscription_commands(commands)):
            LOGGER.info("Subscriptions: %s", len(subscriptions))
            self._latest_subscriptions.set(subscriptions)

    async def _answer_commands(self, commands: AsyncIterable[Command]) -> None:
        async for command in commands:
            if isinstance(command, Help):
                await self._reply(command.chat_id, ReplyKind.HELP)
            elif isinstance(command, Search):
                if not command.filter_text:
                    LOGGER.info("Empty search from %s ignored", command.chat_id)
                    continue
                job = self._router.search(command)
                if job is not None:
                    await self._enqueue(job)

    async def _reply(self, chat_id: int, kind: ReplyKind, filter_text: str = "") -> None:
        await self._enqueue(NotificationJob(chat_id=chat_id, notification=CommandReply(kind, filter_text)))

    async def _enqueue(self, job: NotificationJob) -> None:
        await self._jobs.put(job)

    async def _deliver(self) -> None:
        while True:
            job = await self._jobs.get()
            try:
                await self._notifier.send(job)
            except Exception:
                LOGGER.exception("Failed to deliver notification to %s", job.chat_id)
            finally:
                self._jobs.task_done()

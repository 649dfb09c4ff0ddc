"""Telegram Bot API notification adapter.

Formats notification jobs and delivers them through the Bot API. Transient
failures are retried forever with a fixed delay; a recipient that rejects the
bot permanently (unknown chat, bot blocked) is logged and skipped.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, wait_fixed

from adapters.notification_formatting import format_notification
from adapters.telegram_bot import TelegramApiError, TelegramBotClient
from core.config import NotificationConfig
from core.models import NotificationJob

LOGGER = logging.getLogger(__name__)

PERMANENT_STATUS_CODES = {400, 403}


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, TelegramApiError):
        return exc.status_code not in PERMANENT_STATUS_CODES
    return isinstance(exc, httpx.HTTPError)


class TelegramBotNotifier:
    """NotifierPort adapter that sends messages via the Telegram Bot API."""

    def __init__(
        self,
        bot: TelegramBotClient,
        config: NotificationConfig,
        retry_delay_seconds: float = 10.0,
    ) -> None:
        self._bot = bot
        self._config = config
        self._retry_delay = retry_delay_seconds

    async def send(self, job: NotificationJob) -> None:
        """Send the formatted notification, retrying transient failures."""

        text = format_notification(job.notification, self._config)
        retrying = AsyncRetrying(
            retry=retry_if_exception(is_transient),
            wait=wait_fixed(self._retry_delay),
            before_sleep=before_sleep_log(LOGGER, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._bot.send_message(job.chat_id, text)
        except TelegramApiError as exc:
            LOGGER.warning("Dropping message to %s: %s", job.chat_id, exc.description)
            return
        LOGGER.info("Sent notification message to %s", job.chat_id)

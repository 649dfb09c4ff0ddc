from __future__ import annotations

import asyncio

import httpx
import pytest

from adapters.telegram_bot import TelegramApiError
from adapters.telegram_bot_notifier import TelegramBotNotifier, is_transient
from core.config import NotificationConfig
from core.models import CommandReply, Item, ItemAlert, NotificationJob, ReplyKind

CONFIG = NotificationConfig(item_url_base="https://outlet.example.com/produkt/")


class FakeBot:
    def __init__(self, failures: list[Exception]) -> None:
        self._failures = list(failures)
        self.sent: list[tuple[int, str]] = []
        self.attempts = 0

    async def send_message(self, chat_id: int, text: str) -> dict:
        self.attempts += 1
        if self._failures:
            raise self._failures.pop(0)
        self.sent.append((chat_id, text))
        return {"message_id": self.attempts}


def _notifier(bot: FakeBot) -> TelegramBotNotifier:
    return TelegramBotNotifier(bot, CONFIG, retry_delay_seconds=0)  # type: ignore[arg-type]


def test_is_transient() -> None:
    assert is_transient(httpx.ConnectError("refused"))
    assert is_transient(TelegramApiError("sendMessage", 502, "Bad Gateway"))
    assert is_transient(TelegramApiError("sendMessage", 429, "Too Many Requests"))
    assert not is_transient(TelegramApiError("sendMessage", 403, "Forbidden"))
    assert not is_transient(ValueError("too long"))


def test_transient_failures_are_retried_until_sent() -> None:
    bot = FakeBot([httpx.ConnectError("refused"), TelegramApiError("sendMessage", 502, "Bad Gateway")])
    job = NotificationJob(chat_id=1, notification=ItemAlert(Item(key="1", title="Grey Sofa", url_path="grey-sofa")))

    asyncio.run(_notifier(bot).send(job))

    assert bot.attempts == 3
    assert bot.sent == [(1, "New outlet item! Grey Sofa - n/a - n/a - n/a. https://outlet.example.com/produkt/grey-sofa")]


def test_permanent_rejection_is_dropped() -> None:
    bot = FakeBot([TelegramApiError("sendMessage", 403, "Forbidden: bot was blocked by the user")])
    job = NotificationJob(chat_id=1, notification=CommandReply(ReplyKind.SUBSCRIBED, "sofa"))

    asyncio.run(_notifier(bot).send(job))

    assert bot.attempts == 1
    assert bot.sent == []


def test_precondition_violation_fails_fast() -> None:
    bot = FakeBot([ValueError("Message text must be 1-4095 characters")])
    job = NotificationJob(chat_id=1, notification=CommandReply(ReplyKind.HELP))

    with pytest.raises(ValueError):
        asyncio.run(_notifier(bot).send(job))
    assert bot.attempts == 1

"""Telegram Bot API client.

Covers the three methods the watcher needs: ``sendMessage``, ``getUpdates``
(polled with an increasing offset cursor) and ``setMyCommands``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterable, Optional

import httpx

from adapters.telegram_mapper import build_command
from core.models import Command

LOGGER = logging.getLogger(__name__)

API_BASE_URL = "https://api.telegram.org"
MAX_MESSAGE_LENGTH = 4095


class TelegramApiError(Exception):
    """Non-2xx response, or a 2xx response with ``ok: false``."""

    def __init__(self, method: str, status_code: int, description: str) -> None:
        super().__init__(f"Bot API {method} failed with {status_code}: {description}")
        self.method = method
        self.status_code = status_code
        self.description = description


@dataclass(frozen=True)
class BotCommand:
    command: str
    description: str


BOT_COMMANDS = (
    BotCommand("subscribe", "Subscribe to price alerts."),
    BotCommand("unsubscribe", "Unsubscribe from price alerts."),
    BotCommand("search", "Search in sale items."),
    BotCommand("help", "Show the available commands."),
)


class TelegramBotClient:
    """Bot API client over a shared ``httpx.AsyncClient``.

    The update cursor lives on the instance, so a restarted update stream
    resumes after the last update it handed out.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        bot_token: str,
        updates_timeout_seconds: int = 20,
        base_url: str = API_BASE_URL,
    ) -> None:
        self._client = client
        self._bot_token = bot_token
        self._updates_timeout = updates_timeout_seconds
        self._base_url = base_url.rstrip("/")
        self._offset: Optional[int] = None

    @property
    def offset(self) -> Optional[int]:
        return self._offset

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"{self._base_url}/bot{self._bot_token}/{method}"

    async def _invoke(self, method: str, payload: dict, timeout: Optional[float] = None) -> Any:
        LOGGER.debug("Invoking %s", method)
        kwargs: dict[str, Any] = {"json": payload}
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = await self._client.post(self._endpoint(method), **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.is_success or not body.get("ok", False):
            description = body.get("description") or response.text
            LOGGER.error("API call to %s failed (%s)", method, response.status_code)
            raise TelegramApiError(method, response.status_code, description)
        return body.get("result")

    async def send_message(self, chat_id: int, text: str) -> dict:
        """Send a plain text message; text must be 1-4095 characters."""

        if not 1 <= len(text) <= MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message text must be 1-{MAX_MESSAGE_LENGTH} characters, got {len(text)}")
        LOGGER.info("Sending message to %s", chat_id)
        payload = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        return await self._invoke("sendMessage", payload)

    async def set_my_commands(self, commands: Iterable[BotCommand] = BOT_COMMANDS) -> None:
        payload = {
            "commands": [
                {"command": command.command, "description": command.description} for command in commands
            ]
        }
        await self._invoke("setMyCommands", payload)

    async def get_updates(self, limit: int = 100) -> list[dict]:
        """Fetch one batch of updates after the current cursor."""

        payload: dict[str, Any] = {
            "limit": limit,
            "timeout": self._updates_timeout,
            "allowed_updates": ["message"],
        }
        if self._offset is not None:
            payload["offset"] = self._offset
        # Long polling holds the request open, so the read timeout must outlast it.
        result = await self._invoke("getUpdates", payload, timeout=self._updates_timeout + 10)
        LOGGER.debug("Received %s updates from Telegram", len(result or []))
        return list(result or [])

    async def updates(self, idle_delay_seconds: float = 1.0) -> AsyncIterator[dict]:
        """Yield updates forever, advancing the cursor past each one handed out.

        The cursor moves only after the consumer took the update, so an update
        is confirmed to Telegram on the next poll at the earliest.
        """

        while True:
            batch = await self.get_updates()
            for update in batch:
                update_id = update.get("update_id")
                yield update
                if isinstance(update_id, int):
                    self._offset = max(self._offset or 0, update_id + 1)
            if not batch:
                await asyncio.sleep(idle_delay_seconds)

    async def commands(self) -> AsyncIterator[Command]:
        """CommandSourcePort: updates that carry a recognised bot command."""

        async for update in self.updates():
            LOGGER.debug("Update from Telegram: %s", update.get("update_id"))
            command = build_command(update)
            if command is not None:
                yield command

"""Telegram-to-core command mapping adapter.

This keeps Bot API update payloads out of the core pipeline.
"""

from __future__ import annotations

from typing import Optional, Tuple

from core.models import Command, Help, Search, Subscribe, Unsubscribe


def split_command(text: str) -> Optional[Tuple[str, str]]:
    """Split ``/name@bot argument`` into (name, argument).

    Returns None when the text is not a bot command.
    """

    text = text.strip()
    if not text.startswith("/"):
        return None
    head, _, argument = text.partition(" ")
    # Group chats address commands to a bot as /command@botname.
    name = head[1:].split("@", 1)[0].lower()
    if not name:
        return None
    return name, argument.strip()


def build_command(update: dict) -> Optional[Command]:
    """Build a core Command from a Bot API update, if it carries one."""

    message = update.get("message") or {}
    text = message.get("text")
    chat_id = (message.get("chat") or {}).get("id")
    if not isinstance(text, str) or not isinstance(chat_id, int):
        return None

    parsed = split_command(text)
    if parsed is None:
        return None
    name, argument = parsed

    if name == "subscribe":
        return Subscribe(chat_id=chat_id, filter_text=argument)
    if name == "unsubscribe":
        return Unsubscribe(chat_id=chat_id, filter_text=argument)
    if name == "search":
        return Search(chat_id=chat_id, filter_text=argument)
    if name in {"help", "start"}:
        return Help(chat_id=chat_id)
    return None

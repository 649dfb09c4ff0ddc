"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters (the bot notifier and
the CLI search) and keeps messages consistent regardless of delivery channel.
Messages are plain text; the Bot API is called without a parse mode.
"""

from __future__ import annotations

from core.config import NotificationConfig
from core.models import CommandReply, Item, ItemAlert, Notification, ReplyKind, SearchResults
from core.subscriptions import MAX_FILTER_LENGTH, MIN_FILTER_LENGTH

HELP_TEXT = "\n".join(
    [
        "I watch the outlet and tell you when matching items show up.",
        "",
        "/subscribe <word> - get alerts for new items containing <word>",
        "/unsubscribe <word> - stop those alerts",
        "/search <word> - list current items with <word> in the title",
    ]
)


def item_url(item: Item, config: NotificationConfig) -> str:
    return f"{config.item_url_base}{item.url_path or ''}"


def format_item_alert(item: Item, config: NotificationConfig) -> str:
    return f"New outlet item! {item.blurb_text}. {item_url(item, config)}"


def format_search_results(results: SearchResults, config: NotificationConfig) -> str:
    """Render a search answer, capping the listing at ``max_listing_chars``."""

    header = f"Found {len(results.items)} matching items."
    listing = "\n".join(f"* {item.blurb_text}" for item in results.items)
    listing = listing[: config.max_listing_chars]
    if not listing:
        return header
    return f"{header}\n{listing}"


def format_command_reply(reply: CommandReply) -> str:
    if reply.kind is ReplyKind.SUBSCRIBED:
        return f'You will now receive updates for "{reply.filter_text}".'
    if reply.kind is ReplyKind.UNSUBSCRIBED:
        return f'You will no longer receive updates for "{reply.filter_text}".'
    if reply.kind is ReplyKind.INVALID_FILTER:
        return (
            "Invalid subscription filter. "
            f"Use {MIN_FILTER_LENGTH}-{MAX_FILTER_LENGTH} letters, digits or underscores."
        )
    return HELP_TEXT


def format_notification(notification: Notification, config: NotificationConfig) -> str:
    """Return the message text for any notification type."""

    if isinstance(notification, ItemAlert):
        return format_item_alert(notification.item, config)
    if isinstance(notification, SearchResults):
        return format_search_results(notification, config)
    if isinstance(notification, CommandReply):
        return format_command_reply(notification)
    raise ValueError(f"Unsupported notification: {notification!r}")

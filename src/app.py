"""Application entry point for the pricewatcher bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

from adapters.catalog_client import CatalogClient
from adapters.json_storage import processed_keys_state, subscriptions_state
from adapters.notification_formatting import format_search_results
from adapters.telegram_bot import BOT_COMMANDS, TelegramBotClient
from adapters.telegram_bot_notifier import TelegramBotNotifier
from client import build_http_client
from core.models import SearchResults
from core.pipeline import WatchPipeline
from core.router import search_items
from settings import PROJECT_ROOT, Settings, load_settings

NAME = "PRICEWATCHER"
FONT = "tarty-1"

# Env vars whose values never reach the logs; httpx logs Bot API URLs,
# and those contain the token.
DEFAULT_REDACTED = ["TELEGRAM_BOT_TOKEN"]


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    names = list(DEFAULT_REDACTED)
    if redact_cfg.get("enabled", True):
        names.extend(redact_cfg.get("patterns", []))
    values = []
    for name in names:
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/pricewatcher.log")
        if not os.path.isabs(path):
            path = os.path.join(PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # httpx logs every request at INFO, which is one line per poll.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


async def _watch(settings: Settings) -> None:
    logger = logging.getLogger(__name__)
    if not settings.bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required to run the watcher")

    async with build_http_client() as http:
        bot = TelegramBotClient(
            http,
            settings.bot_token,
            updates_timeout_seconds=settings.updates_timeout_seconds,
        )
        notifier = TelegramBotNotifier(
            bot,
            settings.notifications,
            retry_delay_seconds=settings.pipeline.retry_delay_seconds,
        )
        pipeline = WatchPipeline(
            catalog=CatalogClient(http, settings.catalog_url),
            command_source=bot,
            notifier=notifier,
            processed_state=processed_keys_state(settings.state_dir),
            subscription_state=subscriptions_state(settings.state_dir),
            config=settings.pipeline,
        )

        try:
            await bot.set_my_commands(BOT_COMMANDS)
        except Exception:
            # The command menu is cosmetic; the bot works without it.
            logger.exception("Failed to register bot commands")
        else:
            logger.info("Registered %s bot commands", len(BOT_COMMANDS))

        logger.info(
            "Watching %s every %ss, state in %s",
            settings.catalog_url,
            settings.pipeline.poll_interval_seconds,
            settings.state_dir,
        )
        await pipeline.run()


def _run(config_path: Optional[str]) -> None:
    _print_banner()
    settings = load_settings(config_path)
    _configure_logging(settings.logging)
    logger = logging.getLogger(__name__)
    logger.info("Application is starting")
    try:
        asyncio.run(_watch(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down")


async def _search_once(settings: Settings, filter_text: str) -> str:
    async with build_http_client() as http:
        snapshot = await CatalogClient(http, settings.catalog_url).fetch()
    found = search_items(snapshot, filter_text)
    return format_search_results(SearchResults(filter_text, found), settings.notifications)


def _search(config_path: Optional[str], filter_text: str) -> None:
    settings = load_settings(config_path)
    _configure_logging(settings.logging)
    print(asyncio.run(_search_once(settings, filter_text)))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="pricewatcher")
    parser.add_argument("--config", help="Path to config.json (default: project root)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    search_parser = subparsers.add_parser("search", help="Search the current catalog once and exit")
    search_parser.add_argument("filter", help="Text to look for in item titles")

    args = parser.parse_args(argv)
    if args.command == "search":
        _search(args.config, args.filter)
        return
    _run(args.config)


if __name__ == "__main__":
    main()

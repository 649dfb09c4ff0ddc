"""Configuration for pricewatcher.

Settings are read once at process entry into an immutable ``Settings`` value
that is passed into every component; nothing in the core looks configuration
up on its own. An optional ``config.json`` holds the editable settings, and
environment variables (also read from ``.env`` via python-dotenv) override
it and carry the bot token.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

from core.config import NotificationConfig, PipelineConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Editable settings live in config.json next to the project; it is optional.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

DEFAULT_CATALOG_URL = (
    "https://www.bolia.com/api/search/outlet?includerangelimits=true&language=nb-no"
    "&mode=category&pageLink=5471&size=2000&v=2021.4143.1215.1-48"
)
DEFAULT_ITEM_URL_BASE = "https://www.bolia.com/nb-no/mot-oss/butikker/online-outlet/produkt/"
DEFAULT_STATE_DIR = os.path.join("~", ".pricewatcher")


@dataclass(frozen=True)
class Settings:
    """Everything the watcher needs, resolved once at startup."""

    catalog_url: str
    bot_token: Optional[str]
    state_dir: str
    updates_timeout_seconds: int
    pipeline: PipelineConfig
    notifications: NotificationConfig
    logging: dict = field(default_factory=dict)


def _load_json_config(path: str) -> dict:
    """Load config.json if present; a missing file means all defaults."""

    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        config = json.load(handle)
    if not isinstance(config, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")
    return config


def _positive(name: str, value: object) -> float:
    number = float(value)  # type: ignore[arg-type]
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return number


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings from config.json and the environment.

    Environment values win over the file: API_URI, POLL_INTERVAL_SECONDS,
    TELEGRAM_BOT_TOKEN and PRICEWATCHER_STATE_DIR.
    """

    if environ is None:
        load_dotenv()
        environ = os.environ

    config = _load_json_config(config_path or CONFIG_PATH)
    catalog = config.get("catalog", {})
    persistence = config.get("persistence", {})
    telegram = config.get("telegram", {})
    notifications = config.get("notifications", {})

    catalog_url = environ.get("API_URI") or catalog.get("url") or DEFAULT_CATALOG_URL
    poll_interval = _positive(
        "POLL_INTERVAL_SECONDS",
        environ.get("POLL_INTERVAL_SECONDS") or catalog.get("poll_interval_seconds", 10),
    )
    state_dir = environ.get("PRICEWATCHER_STATE_DIR") or persistence.get("state_dir") or DEFAULT_STATE_DIR

    pipeline = PipelineConfig(
        poll_interval_seconds=poll_interval,
        flush_interval_seconds=_positive(
            "persistence.flush_interval_seconds", persistence.get("flush_interval_seconds", 10)
        ),
        retry_delay_seconds=_positive("telegram.retry_delay_seconds", telegram.get("retry_delay_seconds", 10)),
        delivery_workers=int(_positive("notifications.delivery_workers", notifications.get("delivery_workers", 4))),
    )
    notification_config = NotificationConfig(
        item_url_base=catalog.get("item_url_base", DEFAULT_ITEM_URL_BASE),
        max_listing_chars=int(
            _positive("notifications.max_listing_chars", notifications.get("max_listing_chars", 3500))
        ),
    )

    return Settings(
        catalog_url=catalog_url,
        bot_token=environ.get("TELEGRAM_BOT_TOKEN") or None,
        state_dir=os.path.expanduser(state_dir),
        updates_timeout_seconds=int(telegram.get("updates_timeout_seconds", 20)),
        pipeline=pipeline,
        notifications=notification_config,
        logging=config.get("logging", {}),
    )

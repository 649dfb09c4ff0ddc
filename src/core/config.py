"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineConfig:
    """Timing and sizing settings for the core pipeline."""

    poll_interval_seconds: float = 10.0
    flush_interval_seconds: float = 10.0
    retry_delay_seconds: float = 10.0
    delivery_workers: int = 4
    delivery_queue_size: int = 1000


@dataclass(frozen=True)
class NotificationConfig:
    """Notification formatting settings consumed by notifier adapters."""

    item_url_base: str
    max_listing_chars: int = 3500

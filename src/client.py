"""HTTP client factory for pricewatcher.

One ``httpx.AsyncClient`` is shared by the catalog poller and the Bot API
client so both reuse a single connection pool. Its lifecycle is managed
explicitly by the caller with ``async with``.
"""

from __future__ import annotations

import logging

import httpx

USER_AGENT = "pricewatcher/1.0"

# Long polling for updates overrides the read timeout per request.
DEFAULT_TIMEOUT = httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0)


def build_http_client(timeout: httpx.Timeout = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Create the shared async HTTP client."""

    logging.getLogger(__name__).info("Initializing HTTP client")
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        follow_redirects=True,
    )

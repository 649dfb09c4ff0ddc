"""Outlet catalog adapter.

Fetches the catalog JSON over HTTP and maps its nested result lists onto core
Items. Only the handful of fields the watcher uses are read; everything else
in the document is ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core.models import Item, Snapshot

LOGGER = logging.getLogger(__name__)


class CatalogError(Exception):
    """The catalog response could not be turned into a snapshot."""


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def item_from_record(record: dict) -> Optional[Item]:
    """Map one catalog record to an Item, or None if it has no id or title."""

    rec_id = record.get("recId")
    title = _text(record.get("title"))
    if rec_id is None or not title:
        return None

    sales_price = record.get("salesPrice") or {}
    location = record.get("location") or {}
    return Item(
        key=str(rec_id),
        title=title,
        price=_text(sales_price.get("amount")),
        discount_text=_text(record.get("discountText")),
        location=_text(location.get("name")),
        url_path=_text(record.get("urlPath")),
    )


def snapshot_from_document(document: Any) -> Snapshot:
    """Flatten ``products.results[*].results[*]`` into a snapshot."""

    try:
        groups = document["products"]["results"]
    except (KeyError, TypeError) as exc:
        raise CatalogError("Catalog document has no products.results list") from exc
    if not isinstance(groups, list):
        raise CatalogError("products.results is not a list")

    items: set[Item] = set()
    skipped = 0
    for group in groups:
        for record in (group or {}).get("results") or []:
            item = item_from_record(record) if isinstance(record, dict) else None
            if item is None:
                skipped += 1
                continue
            items.add(item)
    if skipped:
        LOGGER.debug("Skipped %s catalog records without id or title", skipped)
    return frozenset(items)


class CatalogClient:
    """CatalogPort implementation backed by a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def fetch(self) -> Snapshot:
        LOGGER.debug("Polling %s", self._url)
        response = await self._client.get(self._url)
        response.raise_for_status()
        try:
            document = response.json()
        except ValueError as exc:
            raise CatalogError("Catalog response is not valid JSON") from exc
        return snapshot_from_document(document)

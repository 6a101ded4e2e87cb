"""Location name cache.

Owned by the running app (see serve.AppState) and shared by scans that
filter locations by name. Never persisted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stockguard.shopify.client import ShopifyClient

logger = logging.getLogger(__name__)


class LocationNameCache:
    """Maps location GIDs to display names, fetching each at most once."""

    def __init__(self, client: ShopifyClient):
        self._client = client
        self._names: dict[str, str | None] = {}
        self._lock = asyncio.Lock()

    async def name(self, location_gid: str) -> str | None:
        if location_gid in self._names:
            return self._names[location_gid]
        async with self._lock:
            if location_gid not in self._names:
                self._names[location_gid] = await self._client.fetch_location_name(location_gid)
                logger.debug("Cached location name for %s", location_gid)
        return self._names[location_gid]

    async def matches(self, location_gid: str, needle: str) -> bool:
        """True if ``needle`` is a substring of the location's GID or name."""
        if needle in location_gid:
            return True
        name = await self.name(location_gid)
        return bool(name) and needle.lower() in name.lower()

    def clear(self) -> None:
        self._names.clear()

    def __len__(self) -> int:
        return len(self._names)

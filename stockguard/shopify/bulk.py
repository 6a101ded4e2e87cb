"""Bulk export lifecycle: start, poll, cancel, download.

Shopify runs one bulk query operation per shop at a time:
CREATED/RUNNING -> COMPLETED (with url) | CANCELED | FAILED | EXPIRED.
The downloaded JSONL is scratch data; it can always be recreated.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable

from stockguard.errors import BulkOperationError
from stockguard.inventory.models import UserError
from stockguard.shopify import queries
from stockguard.shopify.client import ShopifyClient

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = {"CREATED", "RUNNING", "CANCELING"}
CANCELABLE_STATUSES = {"CREATED", "RUNNING"}


class BulkExporter:
    """Drives the current bulk operation for one shop."""

    def __init__(
        self,
        client: ShopifyClient,
        dest: Path,
        mode: str = "inventory_items",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self.dest = Path(dest)
        self.mode = mode
        self._sleep = sleep

    async def start(self, search: str | None = None) -> tuple[dict | None, list[UserError]]:
        """Launch a bulk query, optionally filtered with Shopify search syntax."""
        operation, errors = await self._client.run_bulk_query(queries.build_bulk_query(self.mode, search))
        if errors:
            logger.warning("Bulk start rejected: %s", [e.message for e in errors])
        else:
            logger.info("Bulk operation started: %s (mode=%s, filter=%s)", (operation or {}).get("id"), self.mode, search)
        return operation, errors

    async def status(self) -> dict | None:
        return await self._client.current_bulk_operation()

    async def cancel(self) -> dict:
        """Cancel the current operation if it is still pending or running.

        No operation, or one already finished, is a no-op, not an error.
        Files downloaded earlier are untouched.
        """
        operation = await self.status()
        if not operation or operation.get("status") not in CANCELABLE_STATUSES:
            return {"cancelled": None, "userErrors": [], "status": operation}
        errors = await self._client.cancel_bulk_operation(operation["id"])
        if not errors:
            logger.info("Bulk operation cancel requested: %s", operation["id"])
        return {
            "cancelled": None if errors else operation["id"],
            "userErrors": errors,
            "status": operation,
        }

    async def wait(self, timeout: float, poll_interval: float = 2.0) -> dict | None:
        """Poll until the operation leaves the active states or ``timeout`` passes."""
        deadline = time.monotonic() + timeout
        operation = await self.status()
        while operation and operation.get("status") in ACTIVE_STATUSES and time.monotonic() < deadline:
            await self._sleep(poll_interval)
            operation = await self.status()
        return operation

    async def download(self, wait_seconds: float = 0.0) -> dict:
        """Fetch the finished export into ``self.dest``.

        Raises:
            BulkOperationError: operation missing, not COMPLETED, or without url.
        """
        operation = await (self.wait(wait_seconds) if wait_seconds > 0 else self.status())
        if not operation or operation.get("status") != "COMPLETED" or not operation.get("url"):
            raise BulkOperationError("bulk operation is not COMPLETED or has no url", operation)
        written = await self._client.download(operation["url"], self.dest)
        return {
            "savedTo": str(self.dest),
            "bytes": written,
            "objectCount": operation.get("objectCount"),
        }

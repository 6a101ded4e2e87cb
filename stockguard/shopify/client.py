"""Async Shopify GraphQL Admin API client.

Wraps the inventory, catalog and bulk-operation calls stockguard needs.
Every call has a bounded timeout; failures surface as ``ShopifyError``
subclasses, never as raw httpx exceptions. Reads are retried with backoff,
mutations are sent exactly once.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, AsyncIterator

import httpx

from stockguard.config import Settings
from stockguard.errors import (
    ConfigurationError,
    ShopifyError,
    ShopifyGraphQLError,
    ShopifyHTTPError,
    ShopifyTimeoutError,
)
from stockguard.inventory.models import UserError
from stockguard.shopify import queries
from stockguard.shopify.retry import with_backoff

logger = logging.getLogger(__name__)


class ShopifyClient:
    """Authenticated access to one shop's Admin API."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str = "2025-07",
        timeout: float = 30.0,
        read_max_retries: int = 2,
        retry_base_delay: float = 1.0,
        http: httpx.AsyncClient | None = None,
    ):
        self.shop = shop
        self.api_version = api_version
        self._access_token = access_token
        self._timeout = timeout
        self._read_max_retries = read_max_retries
        self._retry_base_delay = retry_base_delay
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient | None = None) -> ShopifyClient:
        return cls(
            shop=settings.shopify_shop,
            access_token=settings.shopify_admin_token,
            api_version=settings.shopify_api_version,
            timeout=settings.request_timeout_seconds,
            read_max_retries=settings.read_max_retries,
            http=http,
        )

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.shop:
            missing.append("SHOPIFY_SHOP")
        if not self._access_token:
            missing.append("SHOPIFY_ADMIN_TOKEN")
        return missing

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── transport ─────────────────────────────────────────────────────────

    async def graphql(
        self,
        query: str,
        variables: dict | None = None,
        *,
        retry: bool = True,
    ) -> dict[str, Any]:
        """Run a GraphQL document and return its ``data`` object.

        Raises:
            ConfigurationError: shop or access token not configured.
            ShopifyTimeoutError: no answer within the timeout.
            ShopifyHTTPError: non-2xx response.
            ShopifyGraphQLError: top-level ``errors`` in the body.
        """
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(missing)

        async def _post() -> Any:
            response = await self._http.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers={
                    "X-Shopify-Access-Token": self._access_token,
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
            response.raise_for_status()
            return response.json()

        try:
            body = await with_backoff(
                _post,
                max_retries=self._read_max_retries if retry else 0,
                base_delay=self._retry_base_delay,
                label="shopify.graphql",
            )
        except httpx.TimeoutException as e:
            raise ShopifyTimeoutError(f"Shopify timed out after {self._timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ShopifyHTTPError(e.response.status_code, e.response.reason_phrase) from e
        except httpx.HTTPError as e:
            raise ShopifyError(f"Shopify request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise ShopifyError("Shopify returned invalid JSON") from e

        if not isinstance(body, dict):
            raise ShopifyError("Shopify returned an unexpected body")
        if body.get("errors"):
            raise ShopifyGraphQLError(body["errors"])
        return body.get("data") or {}

    # ── reads ─────────────────────────────────────────────────────────────

    async def fetch_variant(self, variant_gid: str) -> dict | None:
        """Variant with its inventory item and up to 100 levels, or None."""
        data = await self.graphql(queries.VARIANT_WITH_LEVELS, {"id": variant_gid})
        return data.get("productVariant")

    async def fetch_inventory_level(self, item_gid: str, location_gid: str) -> dict | None:
        """Inventory item (``id``, ``tracked``, ``inventoryLevel``) or None."""
        data = await self.graphql(
            queries.INVENTORY_LEVEL,
            {"itemId": item_gid, "locationId": location_gid},
        )
        return data.get("inventoryItem")

    async def iter_product_pages(
        self,
        page_size: int = 20,
        max_pages: int | None = None,
    ) -> AsyncIterator[list[dict[str, str]]]:
        """Walk the catalog with cursor pagination.

        Yields one list per page of ``{"productId", "variantId", "sku"}``.
        """
        cursor: str | None = None
        pages = 0
        while True:
            if max_pages and pages >= max_pages:
                return
            pages += 1
            data = await self.graphql(
                queries.PRODUCTS_VARIANT_IDS,
                {"first": page_size, "cursor": cursor},
            )
            products = data.get("products") or {}
            variants = []
            for edge in products.get("edges") or []:
                product = edge.get("node") or {}
                for v_edge in (product.get("variants") or {}).get("edges") or []:
                    variant = v_edge.get("node") or {}
                    if variant.get("id"):
                        variants.append({
                            "productId": product.get("id"),
                            "variantId": variant["id"],
                            "sku": variant.get("sku") or "",
                        })
            yield variants

            page_info = products.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                return
            cursor = page_info.get("endCursor")

    async def fetch_location_name(self, location_gid: str) -> str | None:
        data = await self.graphql(queries.LOCATION_NAME, {"id": location_gid})
        location = data.get("location") or {}
        return location.get("name")

    async def current_bulk_operation(self) -> dict | None:
        data = await self.graphql(queries.BULK_STATUS)
        return data.get("currentBulkOperation")

    # ── writes (never retried) ────────────────────────────────────────────

    async def set_on_hand(self, reason: str, quantities: list[dict]) -> list[UserError]:
        """Set absolute on-hand quantities. Returns mutation user errors."""
        data = await self.graphql(
            queries.INVENTORY_SET_ON_HAND,
            {"input": {"reason": reason, "setQuantities": quantities}},
            retry=False,
        )
        payload = data.get("inventorySetOnHandQuantities") or {}
        return UserError.from_payload(payload.get("userErrors"))

    async def run_bulk_query(self, bulk_query: str) -> tuple[dict | None, list[UserError]]:
        data = await self.graphql(queries.BULK_RUN, {"query": bulk_query}, retry=False)
        payload = data.get("bulkOperationRunQuery") or {}
        return payload.get("bulkOperation"), UserError.from_payload(payload.get("userErrors"))

    async def cancel_bulk_operation(self, operation_id: str) -> list[UserError]:
        data = await self.graphql(queries.BULK_CANCEL, {"id": operation_id}, retry=False)
        payload = data.get("bulkOperationCancel") or {}
        return UserError.from_payload(payload.get("userErrors"))

    # ── files ─────────────────────────────────────────────────────────────

    async def download(self, url: str, dest: Path) -> int:
        """Stream ``url`` into ``dest``. Returns bytes written.

        The previous file at ``dest`` is only replaced once the download
        completes.
        """
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        written = 0
        try:
            # Signed storage URL: no Admin API token
            async with self._http.stream("GET", url, timeout=self._timeout) as response:
                response.raise_for_status()
                with partial.open("wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)
                        written += len(chunk)
        except httpx.TimeoutException as e:
            partial.unlink(missing_ok=True)
            raise ShopifyTimeoutError("bulk download timed out") from e
        except httpx.HTTPStatusError as e:
            partial.unlink(missing_ok=True)
            raise ShopifyHTTPError(e.response.status_code, "bulk download failed") from e
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise ShopifyError(f"bulk download failed: {type(e).__name__}") from e
        os.replace(partial, dest)
        logger.info("Bulk file saved to %s (%d bytes)", dest, written)
        return written

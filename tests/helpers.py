"""Test doubles and payload builders shared across the suite."""

from __future__ import annotations

import base64
import hashlib
import hmac
from pathlib import Path

from stockguard.errors import ShopifyHTTPError
from stockguard.inventory.models import UserError

WEBHOOK_SECRET = "test-secret"


class FakeShopify:
    """In-memory stand-in for ShopifyClient with call recording."""

    def __init__(self) -> None:
        self.variants: dict[str, dict] = {}
        self.items: dict[tuple[str, str], dict] = {}
        self.pages: list[list[dict]] = []
        self.location_names: dict[str, str] = {}
        self.fail_variants: set[str] = set()
        self.user_errors: list[UserError] = []
        self.missing: list[str] = []
        self.bulk_operation: dict | None = None
        self.download_body = b""
        self.set_calls: list[tuple[str, list[dict]]] = []
        self.level_calls: list[tuple[str, str]] = []
        self.run_calls: list[str] = []
        self.cancel_calls: list[str] = []
        self.closed = False

    def missing_credentials(self) -> list[str]:
        return list(self.missing)

    async def fetch_variant(self, variant_gid: str) -> dict | None:
        if variant_gid in self.fail_variants:
            raise ShopifyHTTPError(503, "Service Unavailable")
        return self.variants.get(variant_gid)

    async def fetch_inventory_level(self, item_gid: str, location_gid: str) -> dict | None:
        self.level_calls.append((item_gid, location_gid))
        return self.items.get((item_gid, location_gid))

    async def iter_product_pages(self, page_size: int = 20, max_pages: int | None = None):
        for i, page in enumerate(self.pages):
            if max_pages and i >= max_pages:
                return
            yield page

    async def fetch_location_name(self, location_gid: str) -> str | None:
        return self.location_names.get(location_gid)

    async def set_on_hand(self, reason: str, quantities: list[dict]) -> list[UserError]:
        self.set_calls.append((reason, quantities))
        return list(self.user_errors)

    async def run_bulk_query(self, bulk_query: str):
        self.run_calls.append(bulk_query)
        return {"id": "gid://shopify/BulkOperation/1", "status": "CREATED"}, []

    async def current_bulk_operation(self) -> dict | None:
        return self.bulk_operation

    async def cancel_bulk_operation(self, operation_id: str) -> list[UserError]:
        self.cancel_calls.append(operation_id)
        return []

    async def download(self, url: str, dest: Path) -> int:
        Path(dest).write_bytes(self.download_body)
        return len(self.download_body)

    async def aclose(self) -> None:
        self.closed = True


def quantities(on_hand: int = 0, available: int = 0, committed: int = 0, incoming: int = 0) -> list[dict]:
    return [
        {"name": "on_hand", "quantity": on_hand},
        {"name": "available", "quantity": available},
        {"name": "committed", "quantity": committed},
        {"name": "incoming", "quantity": incoming},
    ]


def make_variant(
    variant_id: str,
    item_id: str,
    levels: dict[str, list[dict]],
    tracked: bool = True,
    sku: str = "SKU-1",
) -> dict:
    """Variant payload as returned by VARIANT_WITH_LEVELS."""
    return {
        "id": variant_id,
        "sku": sku,
        "product": {"id": "gid://shopify/Product/1"},
        "inventoryItem": {
            "id": item_id,
            "tracked": tracked,
            "inventoryLevels": {
                "edges": [
                    {"node": {"location": {"id": loc}, "quantities": qs}}
                    for loc, qs in levels.items()
                ]
            },
        },
    }


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()



"""stockguard configuration.

All values come from the environment (or a local ``.env``). Secrets are
only ever reported as present/absent, never echoed back.
"""

from __future__ import annotations

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Shopify rejects inventorySetOnHandQuantities inputs above this size
SHOPIFY_MAX_SET_QUANTITIES = 250

_REQUIRED = {
    "SHOPIFY_SHOP": "shopify_shop",
    "SHOPIFY_ADMIN_TOKEN": "shopify_admin_token",
}


class Settings(BaseSettings):
    """Environment-driven settings for the stockguard service."""

    # Shopify Admin API
    shopify_shop: str = ""
    shopify_admin_token: str = ""
    shopify_api_version: str = "2025-07"
    request_timeout_seconds: float = 30.0
    read_max_retries: int = 2

    # Webhooks
    shopify_webhook_secret: str = ""
    webhook_key_encodings: str = "raw,hex,base64"
    dedupe_ttl_seconds: float = 300.0
    raise_to_committed: bool = False

    # Corrections
    batch_size: int = 200
    batch_delay_seconds: float = 0.2
    correction_reason: str = "correction"

    # Scans
    scan_page_size: int = 20
    scan_concurrency: int = 5
    bulk_file: Path = Path(tempfile.gettempdir()) / "shopify-bulk.ndjson"
    bulk_mode: str = "inventory_items"

    # Operator endpoints (open when empty)
    admin_token: str = ""

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("batch_size")
    @classmethod
    def _clamp_batch_size(cls, value: int) -> int:
        return max(1, min(value, SHOPIFY_MAX_SET_QUANTITIES))

    @field_validator("scan_concurrency", "scan_page_size")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        return max(1, value)

    @field_validator("bulk_mode")
    @classmethod
    def _known_bulk_mode(cls, value: str) -> str:
        if value not in ("inventory_items", "product_variants"):
            raise ValueError("bulk_mode must be 'inventory_items' or 'product_variants'")
        return value

    @property
    def key_encodings(self) -> list[str]:
        """Ordered webhook secret decodings to try."""
        return [e.strip().lower() for e in self.webhook_key_encodings.split(",") if e.strip()]

    def missing_credentials(self) -> list[str]:
        """Env var names of Admin API credentials that are not set."""
        return [env for env, attr in _REQUIRED.items() if not getattr(self, attr)]

    def env_report(self) -> dict:
        """Which required values are configured. Never includes secret values."""
        return {
            "SHOPIFY_SHOP": bool(self.shopify_shop),
            "SHOPIFY_ADMIN_TOKEN": bool(self.shopify_admin_token),
            "SHOPIFY_WEBHOOK_SECRET": bool(self.shopify_webhook_secret),
            "SHOPIFY_API_VERSION": bool(self.shopify_api_version),
            "ADMIN_TOKEN": bool(self.admin_token),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()

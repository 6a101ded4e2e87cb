"""Exception hierarchy for stockguard.

Contract:
- Client code raises these; HTTP boundaries convert them to JSON results
- Remote ``userErrors`` are values (see inventory.models.UserError), not exceptions
- Messages never carry credentials
"""

from __future__ import annotations

from typing import Any


class StockGuardError(Exception):
    """Base class for all stockguard failures."""


class ConfigurationError(StockGuardError):
    """Required configuration (credentials, secrets) is missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"misconfigured: missing {', '.join(missing)}")


class ShopifyError(StockGuardError):
    """A call to the Shopify Admin API failed."""


class ShopifyHTTPError(ShopifyError):
    """Non-2xx response from Shopify."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(f"Shopify HTTP {status_code}" + (f": {message}" if message else ""))


class ShopifyTimeoutError(ShopifyError):
    """Shopify did not answer within the configured timeout."""


class ShopifyGraphQLError(ShopifyError):
    """Top-level GraphQL ``errors`` in the response body."""

    def __init__(self, errors: Any):
        self.errors = errors
        super().__init__(f"Shopify GraphQL errors: {errors}")


class BulkOperationError(StockGuardError):
    """Bulk export is not in a state that allows the requested action."""

    def __init__(self, message: str, operation: dict | None = None):
        self.operation = operation
        super().__init__(message)


class BulkFileMissingError(StockGuardError):
    """No downloaded bulk export file to scan."""

"""Shopify Admin API access: GraphQL documents, ID helpers, async client."""

from stockguard.shopify.client import ShopifyClient
from stockguard.shopify.ids import to_gid

__all__ = ["ShopifyClient", "to_gid"]

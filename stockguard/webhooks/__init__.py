"""Inventory webhook inbound path.

Receives Shopify ``inventory_levels/update`` webhooks. Each one is
signature-verified, deduplicated and, when the level went negative,
corrected from a fresh server snapshot.
"""

"""Negative inventory guard for Shopify stores.

Detects negative on-hand/available quantities and sets them back to a
safe absolute value, either from inventory webhooks or operator scans.
"""

__version__ = "0.3.0"

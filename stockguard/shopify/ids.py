"""Shopify global ID helpers."""

from __future__ import annotations

GID_PREFIX = "gid://shopify/"


def to_gid(kind: str, value: object) -> str | None:
    """Normalize a bare numeric ID into ``gid://shopify/<kind>/<id>``.

    Fully-qualified GIDs pass through untouched. Empty values give None.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if s.startswith("gid://"):
        return s
    return f"{GID_PREFIX}{kind}/{s}"


def gid_kind(gid: str | None) -> str | None:
    """``gid://shopify/InventoryItem/1`` -> ``InventoryItem``."""
    if not gid or not gid.startswith(GID_PREFIX):
        return None
    parts = gid[len(GID_PREFIX):].split("/")
    return parts[0] or None

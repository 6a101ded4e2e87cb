"""HTTP routes for operators: health, variant, catalog and bulk scans."""

from __future__ import annotations


def flag(value: str | None) -> bool:
    """Query-string boolean: ``1``/``true``/``yes``/``on``."""
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}

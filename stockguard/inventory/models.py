"""Inventory value types shared by the scanners, corrector and webhook path.

None of these are persisted: snapshots are fetched fresh for every scan and
candidates are consumed by the corrector in the same request.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

QUANTITY_NAMES = ("on_hand", "available", "committed", "incoming")


@dataclass(frozen=True)
class InventorySnapshot:
    """Quantities of one inventory item at one location."""

    on_hand: int = 0
    available: int = 0
    committed: int = 0
    incoming: int = 0

    @classmethod
    def from_quantities(cls, quantities: list[dict] | None) -> InventorySnapshot:
        """Build from Shopify's ``quantities(names: [...])`` list.

        Names missing from the list count as 0.
        """
        values: dict[str, int] = {}
        for q in quantities or []:
            if not isinstance(q, dict):
                continue
            name = q.get("name")
            if name in QUANTITY_NAMES:
                try:
                    values[name] = int(q.get("quantity") or 0)
                except (TypeError, ValueError):
                    values[name] = 0
        return cls(**values)

    def to_dict(self) -> dict[str, int]:
        return {
            "onHand": self.on_hand,
            "available": self.available,
            "committed": self.committed,
            "incoming": self.incoming,
        }


@dataclass(frozen=True)
class CorrectionCandidate:
    """An absolute on-hand value to write for one item/location."""

    inventory_item_id: str
    location_id: str
    target_on_hand: int
    snapshot_before: InventorySnapshot
    # product/variant/sku context for reports only
    meta: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_set_quantity(self) -> dict[str, Any]:
        """Shape expected by ``InventorySetQuantityInput``."""
        return {
            "inventoryItemId": self.inventory_item_id,
            "locationId": self.location_id,
            "quantity": self.target_on_hand,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "inventoryItemId": self.inventory_item_id,
            "locationId": self.location_id,
            "setOnHandTo": self.target_on_hand,
            "before": self.snapshot_before.to_dict(),
            **self.meta,
        }


@dataclass(frozen=True)
class UserError:
    """A field-level error reported by a Shopify mutation."""

    field: list[str] | str | None
    message: str

    @classmethod
    def from_payload(cls, errors: list[dict] | None) -> list[UserError]:
        return [
            cls(field=e.get("field"), message=str(e.get("message", "")))
            for e in errors or []
            if isinstance(e, dict)
        ]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BatchResult:
    """Outcome of one chunk sent by the batch corrector."""

    index: int
    size: int
    user_errors: list[UserError] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.user_errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch": self.index,
            "size": self.size,
            "ok": self.ok,
            "userErrors": [e.to_dict() for e in self.user_errors],
            "error": self.error,
        }

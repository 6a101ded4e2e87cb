"""Correction decision: does a snapshot need fixing, and to what value.

Rules, in order:
1. on_hand < 0 -> fix
2. available < 0 with nothing incoming, and either nothing committed or
   raise-to-committed allowed -> fix
3. anything else -> leave alone (negative available backed by incoming
   stock settles on its own)

Target is 0, or the committed quantity when raise-to-committed is allowed
and something is committed. Pure: no I/O.
"""

from __future__ import annotations

from stockguard.inventory.models import CorrectionCandidate, InventorySnapshot


def decide(snapshot: InventorySnapshot, allow_raise_to_committed: bool = False) -> int | None:
    """Return the on-hand value to set, or None when no correction is needed."""
    if snapshot.on_hand < 0:
        return _target(snapshot, allow_raise_to_committed)
    if (
        snapshot.available < 0
        and snapshot.incoming == 0
        and (snapshot.committed == 0 or allow_raise_to_committed)
    ):
        return _target(snapshot, allow_raise_to_committed)
    return None


def _target(snapshot: InventorySnapshot, allow_raise_to_committed: bool) -> int:
    if allow_raise_to_committed and snapshot.committed > 0:
        return snapshot.committed
    return 0


def candidate_for(
    inventory_item_id: str,
    location_id: str,
    snapshot: InventorySnapshot,
    allow_raise_to_committed: bool = False,
    meta: dict | None = None,
) -> CorrectionCandidate | None:
    """Wrap :func:`decide` into a candidate for one item/location."""
    target = decide(snapshot, allow_raise_to_committed)
    if target is None:
        return None
    return CorrectionCandidate(
        inventory_item_id=inventory_item_id,
        location_id=location_id,
        target_on_hand=target,
        snapshot_before=snapshot,
        meta=meta or {},
    )

"""Inventory snapshots, the correction decision, scanners and the batch corrector."""

from stockguard.inventory.decision import candidate_for, decide
from stockguard.inventory.models import (
    BatchResult,
    CorrectionCandidate,
    InventorySnapshot,
    UserError,
)

__all__ = [
    "BatchResult",
    "CorrectionCandidate",
    "InventorySnapshot",
    "UserError",
    "candidate_for",
    "decide",
]

"""CSV rendering of correction candidates for dry-run downloads."""

from __future__ import annotations

import csv
import io
from typing import Iterable

from fastapi.responses import Response

from stockguard.inventory.models import CorrectionCandidate

CSV_COLUMNS = [
    "inventoryItemId",
    "locationId",
    "productId",
    "variantId",
    "sku",
    "onHand",
    "available",
    "committed",
    "incoming",
    "setOnHandTo",
]


def candidates_csv(candidates: Iterable[CorrectionCandidate]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for c in candidates:
        writer.writerow({
            "inventoryItemId": c.inventory_item_id,
            "locationId": c.location_id,
            "productId": c.meta.get("productId") or "",
            "variantId": c.meta.get("variantId") or "",
            "sku": c.meta.get("sku") or "",
            **c.snapshot_before.to_dict(),
            "setOnHandTo": c.target_on_hand,
        })
    return buf.getvalue()


def csv_response(candidates: Iterable[CorrectionCandidate], filename: str) -> Response:
    return Response(
        content=candidates_csv(candidates),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

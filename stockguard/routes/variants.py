"""Single-variant dry-run and fix."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from stockguard.inventory.scan import VariantScan, scan_variant
from stockguard.reports import csv_response
from stockguard.routes import flag
from stockguard.security import require_operator
from stockguard.shopify.ids import to_gid

logger = logging.getLogger(__name__)

router = APIRouter(tags=["variants"], dependencies=[Depends(require_operator)])


async def _scan(request: Request, variant_id: str | None, variant_gid: str | None, raise_: str | None) -> VariantScan:
    gid = to_gid("ProductVariant", variant_gid or variant_id)
    if gid is None:
        raise HTTPException(status_code=400, detail="missing ?variantId= or ?variantGid=")
    scan = await scan_variant(request.app.state.guard.client, gid, flag(raise_))
    if not scan.found:
        raise HTTPException(status_code=404, detail="variant not found")
    return scan


@router.get("/variant-dry")
async def variant_dry(
    request: Request,
    variant_id: str | None = Query(None, alias="variantId"),
    variant_gid: str | None = Query(None, alias="variantGid"),
    raise_: str | None = Query(None, alias="raise"),
    format: str = Query("json"),
):
    scan = await _scan(request, variant_id, variant_gid, raise_)
    if not scan.tracked:
        return {"ok": True, "toFixCount": 0, "note": "inventory item not tracked"}
    if format == "csv":
        return csv_response(scan.candidates, "variant-dry.csv")
    return {
        "ok": True,
        "mode": "dry-run",
        "toFixCount": len(scan.candidates),
        "items": [c.to_dict() for c in scan.candidates],
    }


@router.api_route("/variant-fix", methods=["GET", "POST"])
async def variant_fix(
    request: Request,
    variant_id: str | None = Query(None, alias="variantId"),
    variant_gid: str | None = Query(None, alias="variantGid"),
    raise_: str | None = Query(None, alias="raise"),
):
    state = request.app.state.guard
    scan = await _scan(request, variant_id, variant_gid, raise_)
    if not scan.tracked:
        return {"ok": True, "fixedCount": 0, "note": "inventory item not tracked"}
    if not scan.candidates:
        return {"ok": True, "fixedCount": 0, "message": "variant has no negative quantities"}

    report = [c.to_dict() for c in scan.candidates]
    user_errors = await state.client.set_on_hand(
        state.settings.correction_reason,
        [c.to_set_quantity() for c in scan.candidates],
    )
    if user_errors:
        logger.warning("Variant fix rejected for %s: %d user errors", scan.variant.get("id"), len(user_errors))
        return JSONResponse(
            {"ok": False, "userErrors": [e.to_dict() for e in user_errors], "attempted": report},
            status_code=400,
        )
    logger.info("Variant %s fixed at %d locations", scan.variant.get("id"), len(report))
    return {"ok": True, "fixedCount": len(report), "report": report}

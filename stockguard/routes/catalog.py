"""Whole-catalog live scan and fix."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from stockguard.inventory.corrector import summarize
from stockguard.inventory.scan import CatalogScanReport, scan_catalog
from stockguard.reports import csv_response
from stockguard.routes import flag
from stockguard.security import require_operator

router = APIRouter(tags=["catalog"], dependencies=[Depends(require_operator)])

SAMPLE_SIZE = 50


async def _scan(request: Request, exclude: str | None, pages: int | None, c: int | None, raise_: str | None) -> CatalogScanReport:
    state = request.app.state.guard
    return await scan_catalog(
        state.client,
        page_size=state.settings.scan_page_size,
        max_pages=pages,
        concurrency=c or state.settings.scan_concurrency,
        allow_raise_to_committed=flag(raise_),
        exclude_location=exclude or None,
        locations=state.locations,
    )


@router.get("/auto-dry")
async def auto_dry(
    request: Request,
    exclude: str | None = Query(None),
    pages: int | None = Query(None, ge=1),
    c: int | None = Query(None, ge=1, le=50),
    raise_: str | None = Query(None, alias="raise"),
    format: str = Query("json"),
):
    report = await _scan(request, exclude, pages, c, raise_)
    if format == "csv":
        return csv_response(report.candidates, "auto-dry.csv")
    return {
        "ok": True,
        "mode": "dry-run",
        "toFixCount": len(report.candidates),
        "pages": report.pages,
        "variantsScanned": report.variants_scanned,
        "failedVariants": report.failed_variants,
        "sample": [c.to_dict() for c in report.candidates[:SAMPLE_SIZE]],
    }


@router.api_route("/auto-fix", methods=["GET", "POST"])
async def auto_fix(
    request: Request,
    exclude: str | None = Query(None),
    pages: int | None = Query(None, ge=1),
    c: int | None = Query(None, ge=1, le=50),
    raise_: str | None = Query(None, alias="raise"),
):
    state = request.app.state.guard
    report = await _scan(request, exclude, pages, c, raise_)
    if not report.candidates:
        return {
            "ok": True,
            "fixedCount": 0,
            "message": "no negative quantities to correct",
            "failedVariants": report.failed_variants,
        }
    results = await state.corrector.apply(report.candidates, state.settings.correction_reason)
    summary = summarize(results)
    return {
        "ok": summary["failedBatches"] == 0,
        "fixedCount": summary["appliedCount"],
        "candidateCount": len(report.candidates),
        "failedVariants": report.failed_variants,
        **summary,
    }

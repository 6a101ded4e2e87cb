"""Bulk export routes: start, status, cancel, download, dry-run, fix."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from stockguard.errors import BulkFileMissingError
from stockguard.inventory.bulk_file import BulkScanOptions, BulkScanReport, scan_bulk_file
from stockguard.inventory.corrector import summarize
from stockguard.reports import csv_response
from stockguard.routes import flag
from stockguard.security import require_operator
from stockguard.shopify.ids import to_gid

router = APIRouter(tags=["bulk"], dependencies=[Depends(require_operator)])

DRY_SAMPLE_SIZE = 50
FIX_SAMPLE_SIZE = 20


@router.api_route("/bulk-start", methods=["GET", "POST"])
async def bulk_start(request: Request, q: str | None = Query(None)):
    """Start a bulk export. ``q`` is Shopify search syntax, e.g. ``updated_at:>=2025-09-01``."""
    state = request.app.state.guard
    operation, errors = await state.exporter.start(q or None)
    if errors:
        return JSONResponse({"ok": False, "userErrors": [e.to_dict() for e in errors]}, status_code=400)
    return {"ok": True, "started": operation, "filter": q or None, "mode": state.exporter.mode}


@router.get("/bulk-status")
async def bulk_status(request: Request):
    return {"ok": True, "status": await request.app.state.guard.exporter.status()}


@router.post("/bulk-cancel")
async def bulk_cancel(request: Request):
    result = await request.app.state.guard.exporter.cancel()
    if result["userErrors"]:
        return JSONResponse(
            {"ok": False, "userErrors": [e.to_dict() for e in result["userErrors"]], "status": result["status"]},
            status_code=400,
        )
    if result["cancelled"] is None:
        return {"ok": True, "message": "no running bulk operation to cancel", "status": result["status"]}
    return {"ok": True, "cancelled": result["cancelled"]}


@router.get("/bulk-download")
async def bulk_download(request: Request, wait: float = Query(0.0, ge=0, le=600)):
    """Download the finished export; ``wait`` polls up to that many seconds first."""
    info = await request.app.state.guard.exporter.download(wait_seconds=wait)
    return {"ok": True, **info}


def _options(
    raise_: str | None,
    limit_variants: int | None,
    max_corrections: int | None,
    only_variant_id: str | None,
    exclude_variant_id: str | None,
    filter_sku: str | None,
    exclude: str | None,
) -> BulkScanOptions:
    return BulkScanOptions(
        raise_to_committed=flag(raise_),
        exclude_location=exclude or None,
        only_variant_id=to_gid("ProductVariant", only_variant_id),
        exclude_variant_id=to_gid("ProductVariant", exclude_variant_id),
        filter_sku=filter_sku or None,
        limit_variants=limit_variants,
        max_corrections=max_corrections,
    )


async def _scan_file(request: Request, options: BulkScanOptions) -> BulkScanReport:
    path = request.app.state.guard.exporter.dest
    if not path.exists():
        raise BulkFileMissingError("bulk file not found; run /bulk-download first")
    return await run_in_threadpool(scan_bulk_file, path, options)


def _counts(report: BulkScanReport) -> dict:
    return {
        "variantsSeen": report.variants_seen,
        "skippedLines": report.skipped_lines,
        "orphanLevels": report.orphan_levels,
        "truncated": report.truncated,
    }


@router.get("/bulk-dry")
async def bulk_dry(
    request: Request,
    raise_: str | None = Query(None, alias="raise"),
    limit_variants: int | None = Query(None, alias="limitVariants", ge=1),
    max_corrections: int | None = Query(None, alias="maxCorrections", ge=1),
    only_variant_id: str | None = Query(None, alias="onlyVariantId"),
    exclude_variant_id: str | None = Query(None, alias="excludeVariantId"),
    filter_sku: str | None = Query(None, alias="filterSku"),
    exclude: str | None = Query(None),
    format: str = Query("json"),
):
    options = _options(raise_, limit_variants, max_corrections, only_variant_id, exclude_variant_id, filter_sku, exclude)
    report = await _scan_file(request, options)
    if format == "csv":
        return csv_response(report.candidates, "bulk-dry.csv")
    sample = report.candidates if report.truncated else report.candidates[:DRY_SAMPLE_SIZE]
    return {
        "ok": True,
        "mode": "dry-run (bulk file)",
        "toFixCount": len(report.candidates),
        "sample": [c.to_dict() for c in sample],
        **_counts(report),
    }


@router.api_route("/bulk-fix", methods=["GET", "POST"])
async def bulk_fix(
    request: Request,
    raise_: str | None = Query(None, alias="raise"),
    limit_variants: int | None = Query(None, alias="limitVariants", ge=1),
    max_corrections: int | None = Query(None, alias="maxCorrections", ge=1),
    only_variant_id: str | None = Query(None, alias="onlyVariantId"),
    exclude_variant_id: str | None = Query(None, alias="excludeVariantId"),
    filter_sku: str | None = Query(None, alias="filterSku"),
    exclude: str | None = Query(None),
):
    state = request.app.state.guard
    options = _options(raise_, limit_variants, max_corrections, only_variant_id, exclude_variant_id, filter_sku, exclude)
    report = await _scan_file(request, options)
    if not report.candidates:
        return {"ok": True, "fixedCount": 0, "message": "nothing to correct with the given filters", **_counts(report)}

    results = await state.corrector.apply(report.candidates, state.settings.correction_reason)
    summary = summarize(results)
    return {
        "ok": summary["failedBatches"] == 0,
        "fixedCount": summary["appliedCount"],
        "candidateCount": len(report.candidates),
        "sample": [c.to_dict() for c in report.candidates[:FIX_SAMPLE_SIZE]],
        **summary,
        **_counts(report),
    }

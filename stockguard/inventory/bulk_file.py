"""Bulk export file scanning.

Shopify bulk operations produce JSONL where nested connection nodes are
flattened onto their own lines and point at their parent through
``__parentId``. Line order between parents and children is not
guaranteed, so the scan reads the file twice:

1. index parents (inventory items, product variants)
2. resolve inventory level lines against that index and decide

Malformed lines and levels whose parent never appears are counted and
skipped; they never abort the scan. Older exports with variants and
levels nested inline in one product line are read as well.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from stockguard.inventory.decision import candidate_for
from stockguard.inventory.models import CorrectionCandidate, InventorySnapshot
from stockguard.shopify.ids import gid_kind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedLine:
    line_no: int
    record: dict[str, Any]


@dataclass(frozen=True)
class SkippedLine:
    line_no: int
    reason: str


def parse_line(line_no: int, text: str) -> ParsedLine | SkippedLine | None:
    """Parse one JSONL line. Blank lines give None."""
    if not text.strip():
        return None
    try:
        record = json.loads(text)
    except json.JSONDecodeError as e:
        return SkippedLine(line_no, f"invalid JSON: {e.msg}")
    if not isinstance(record, dict):
        return SkippedLine(line_no, "not a JSON object")
    return ParsedLine(line_no, record)


def iter_lines(path: Path) -> Iterator[ParsedLine | SkippedLine]:
    with Path(path).open("r", encoding="utf-8", errors="replace") as fh:
        for line_no, text in enumerate(fh, start=1):
            parsed = parse_line(line_no, text)
            if parsed is not None:
                yield parsed


@dataclass
class BulkScanOptions:
    """Filters and limits for a bulk file scan."""

    raise_to_committed: bool = False
    exclude_location: str | None = None
    only_variant_id: str | None = None
    exclude_variant_id: str | None = None
    filter_sku: str | None = None
    limit_variants: int | None = None
    max_corrections: int | None = None


@dataclass
class BulkScanReport:
    candidates: list[CorrectionCandidate] = field(default_factory=list)
    skipped_lines: int = 0
    orphan_levels: int = 0
    variants_seen: int = 0
    truncated: bool = False


@dataclass
class _ItemContext:
    inventory_item_id: str
    tracked: bool | None = None
    sku: str = ""
    variant_id: str | None = None
    product_id: str | None = None

    def meta(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "variantId": self.variant_id,
            "sku": self.sku or "NO-SKU",
        }


def _edges(connection: Any) -> list[dict]:
    if not isinstance(connection, dict):
        return []
    return [e.get("node") or {} for e in connection.get("edges") or [] if isinstance(e, dict)]


def _item_from_inventory_item(record: dict) -> _ItemContext:
    variant = record.get("variant") or {}
    return _ItemContext(
        inventory_item_id=record["id"],
        tracked=record.get("tracked"),
        sku=record.get("sku") or variant.get("sku") or "",
        variant_id=variant.get("id"),
        product_id=(variant.get("product") or {}).get("id"),
    )


def _item_from_variant(record: dict, product_id: str | None) -> _ItemContext | None:
    item = record.get("inventoryItem") or {}
    if not item.get("id"):
        return None
    return _ItemContext(
        inventory_item_id=item["id"],
        tracked=item.get("tracked"),
        sku=record.get("sku") or "",
        variant_id=record.get("id"),
        product_id=product_id or (record.get("product") or {}).get("id"),
    )


class BulkFileScanner:
    """Two-pass scan of a downloaded bulk export."""

    def __init__(self, options: BulkScanOptions | None = None):
        self.options = options or BulkScanOptions()
        self._counted_variants: set[str] = set()

    def scan(self, path: Path) -> BulkScanReport:
        report = BulkScanReport()
        index = self._index_parents(path, report)
        self._resolve_levels(path, index, report)
        logger.info(
            "Bulk scan of %s: %d candidates, %d skipped lines, %d orphan levels",
            path,
            len(report.candidates),
            report.skipped_lines,
            report.orphan_levels,
        )
        return report

    # pass 1
    def _index_parents(self, path: Path, report: BulkScanReport) -> dict[str, _ItemContext]:
        index: dict[str, _ItemContext] = {}
        for parsed in iter_lines(path):
            if isinstance(parsed, SkippedLine):
                report.skipped_lines += 1
                logger.debug("Skipping bulk line %d: %s", parsed.line_no, parsed.reason)
                continue
            record = parsed.record
            kind = gid_kind(record.get("id"))
            if kind == "InventoryItem":
                index[record["id"]] = _item_from_inventory_item(record)
            elif kind == "ProductVariant":
                ctx = _item_from_variant(record, record.get("__parentId"))
                if ctx is not None:
                    index[record["id"]] = ctx
        return index

    # pass 2
    def _resolve_levels(self, path: Path, index: dict[str, _ItemContext], report: BulkScanReport) -> None:
        for parsed in iter_lines(path):
            if isinstance(parsed, SkippedLine):
                continue
            record = parsed.record
            if "quantities" in record and record.get("__parentId"):
                ctx = index.get(record["__parentId"])
                if ctx is None:
                    report.orphan_levels += 1
                    continue
                self._consider(ctx, record, report)
            elif gid_kind(record.get("id")) == "Product" and "variants" in record:
                for variant in _edges(record.get("variants")):
                    ctx = _item_from_variant(variant, record["id"])
                    if ctx is None:
                        continue
                    for level in _edges((variant.get("inventoryItem") or {}).get("inventoryLevels")):
                        self._consider(ctx, level, report)
                        if report.truncated:
                            return
            elif gid_kind(record.get("id")) == "InventoryItem" and "inventoryLevels" in record:
                ctx = index.get(record["id"]) or _item_from_inventory_item(record)
                for level in _edges(record.get("inventoryLevels")):
                    self._consider(ctx, level, report)
                    if report.truncated:
                        return
            if report.truncated:
                return

    def _accept_variant(self, ctx: _ItemContext, report: BulkScanReport) -> bool:
        opts = self.options
        if ctx.tracked is False:
            return False
        if opts.only_variant_id and ctx.variant_id != opts.only_variant_id:
            return False
        if opts.exclude_variant_id and ctx.variant_id == opts.exclude_variant_id:
            return False
        if opts.filter_sku and opts.filter_sku.lower() not in (ctx.sku or "").lower():
            return False
        key = ctx.variant_id or ctx.inventory_item_id
        if key not in self._counted_variants:
            if opts.limit_variants and len(self._counted_variants) >= opts.limit_variants:
                return False
            self._counted_variants.add(key)
            report.variants_seen = len(self._counted_variants)
        return True

    def _consider(self, ctx: _ItemContext, level: dict, report: BulkScanReport) -> None:
        location_id = (level.get("location") or {}).get("id")
        if not location_id:
            return
        if self.options.exclude_location and self.options.exclude_location in location_id:
            return
        if not self._accept_variant(ctx, report):
            return
        candidate = candidate_for(
            ctx.inventory_item_id,
            location_id,
            InventorySnapshot.from_quantities(level.get("quantities")),
            self.options.raise_to_committed,
            meta=ctx.meta(),
        )
        if candidate is None:
            return
        report.candidates.append(candidate)
        max_corrections = self.options.max_corrections
        if max_corrections and len(report.candidates) >= max_corrections:
            report.truncated = True


def scan_bulk_file(path: Path, options: BulkScanOptions | None = None) -> BulkScanReport:
    """Scan a downloaded export. The scanner is single-use per call."""
    return BulkFileScanner(options).scan(path)

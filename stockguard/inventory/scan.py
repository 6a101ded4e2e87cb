"""Live scans against the Admin API.

- scan_variant: one variant, all its locations
- scan_catalog: every product page, variant snapshots fetched with a
  bounded number of requests in flight
- snapshot_level / scan_level: one inventory item at one location (webhook path)

All of them feed the same decision function; none of them write.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from stockguard.errors import ShopifyError
from stockguard.inventory.decision import candidate_for
from stockguard.inventory.models import CorrectionCandidate, InventorySnapshot

if TYPE_CHECKING:
    from stockguard.shopify.client import ShopifyClient
    from stockguard.shopify.locations import LocationNameCache

logger = logging.getLogger(__name__)


@dataclass
class VariantScan:
    """Result of scanning one variant."""

    variant: dict[str, Any] | None
    candidates: list[CorrectionCandidate] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.variant is not None

    @property
    def tracked(self) -> bool:
        return bool(((self.variant or {}).get("inventoryItem") or {}).get("tracked"))


@dataclass
class CatalogScanReport:
    candidates: list[CorrectionCandidate] = field(default_factory=list)
    pages: int = 0
    variants_scanned: int = 0
    failed_variants: list[str] = field(default_factory=list)


def candidates_from_variant(
    variant: dict[str, Any],
    allow_raise_to_committed: bool = False,
    sku_hint: str = "",
) -> list[CorrectionCandidate]:
    """Decide every inventory level of a fetched variant."""
    item = variant.get("inventoryItem") or {}
    if not item.get("id") or not item.get("tracked"):
        return []
    meta = {
        "productId": (variant.get("product") or {}).get("id"),
        "variantId": variant.get("id"),
        "sku": variant.get("sku") or sku_hint or "NO-SKU",
    }
    out = []
    for edge in (item.get("inventoryLevels") or {}).get("edges") or []:
        level = edge.get("node") or {}
        location_id = (level.get("location") or {}).get("id")
        if not location_id:
            continue
        candidate = candidate_for(
            item["id"],
            location_id,
            InventorySnapshot.from_quantities(level.get("quantities")),
            allow_raise_to_committed,
            meta=meta,
        )
        if candidate is not None:
            out.append(candidate)
    return out


async def scan_variant(
    client: ShopifyClient,
    variant_gid: str,
    allow_raise_to_committed: bool = False,
) -> VariantScan:
    variant = await client.fetch_variant(variant_gid)
    if variant is None:
        return VariantScan(variant=None)
    return VariantScan(variant=variant, candidates=candidates_from_variant(variant, allow_raise_to_committed))


async def snapshot_level(
    client: ShopifyClient,
    item_gid: str,
    location_gid: str,
) -> tuple[bool, InventorySnapshot | None]:
    """Current (tracked, snapshot) for one item/location; snapshot None if missing."""
    item = await client.fetch_inventory_level(item_gid, location_gid)
    if not item:
        return False, None
    level = item.get("inventoryLevel")
    if not level:
        return bool(item.get("tracked")), None
    return bool(item.get("tracked")), InventorySnapshot.from_quantities(level.get("quantities"))


@dataclass
class LevelScan:
    """Result of scanning one item at one location."""

    tracked: bool
    snapshot: InventorySnapshot | None
    candidate: CorrectionCandidate | None = None

    @property
    def candidates(self) -> list[CorrectionCandidate]:
        return [self.candidate] if self.candidate is not None else []


async def scan_level(
    client: ShopifyClient,
    item_gid: str,
    location_gid: str,
    allow_raise_to_committed: bool = False,
) -> LevelScan:
    """Zero or one candidates for one item at one location. Untracked items give none."""
    tracked, snapshot = await snapshot_level(client, item_gid, location_gid)
    if snapshot is None or not tracked:
        return LevelScan(tracked=tracked, snapshot=snapshot)
    return LevelScan(
        tracked=tracked,
        snapshot=snapshot,
        candidate=candidate_for(item_gid, location_gid, snapshot, allow_raise_to_committed),
    )


async def scan_catalog(
    client: ShopifyClient,
    *,
    page_size: int = 20,
    max_pages: int | None = None,
    concurrency: int = 5,
    allow_raise_to_committed: bool = False,
    exclude_location: str | None = None,
    locations: LocationNameCache | None = None,
) -> CatalogScanReport:
    """Walk the whole catalog and collect correction candidates.

    ``exclude_location`` drops levels whose location GID contains it, or
    whose name contains it when a location cache is given. A variant whose
    fetch fails is recorded in ``failed_variants`` and the scan goes on.

    At most ``concurrency`` variant fetches exist at any time; the next task
    is only created once a slot frees up, so the page walk never runs ahead
    of the fetch window.
    """
    report = CatalogScanReport()
    window = asyncio.Semaphore(max(1, concurrency))
    pending: set[asyncio.Task] = set()
    found: list[CorrectionCandidate] = []

    async def _fetch(ref: dict[str, str]) -> None:
        try:
            variant = await client.fetch_variant(ref["variantId"])
        except ShopifyError as e:
            logger.warning("Catalog scan: variant %s failed: %s", ref["variantId"], e)
            report.failed_variants.append(ref["variantId"])
            return
        if variant is not None:
            found.extend(candidates_from_variant(variant, allow_raise_to_committed, ref.get("sku", "")))

    def _done(task: asyncio.Task) -> None:
        pending.discard(task)
        window.release()

    try:
        async for page in client.iter_product_pages(page_size=page_size, max_pages=max_pages):
            report.pages += 1
            report.variants_scanned += len(page)
            for ref in page:
                await window.acquire()
                task = asyncio.create_task(_fetch(ref))
                pending.add(task)
                task.add_done_callback(_done)
        if pending:
            await asyncio.gather(*pending)
    finally:
        for task in list(pending):
            task.cancel()

    for candidate in found:
        if exclude_location and await _excluded(candidate.location_id, exclude_location, locations):
            continue
        report.candidates.append(candidate)

    logger.info(
        "Catalog scan: %d pages, %d variants, %d candidates, %d failed",
        report.pages,
        report.variants_scanned,
        len(report.candidates),
        len(report.failed_variants),
    )
    return report


async def _excluded(location_id: str, needle: str, locations: LocationNameCache | None) -> bool:
    if needle in location_id:
        return True
    if locations is None:
        return False
    try:
        return await locations.matches(location_id, needle)
    except ShopifyError as e:
        logger.warning("Location lookup failed for %s: %s", location_id, e)
        return False

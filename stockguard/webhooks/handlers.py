"""Inventory webhook handler: verify, dedupe, decide, correct.

Flow for one POST:
1. Read raw body (needed for HMAC verification)
2. Verify signature -> 401 on failure, nothing else happens
3. Parse payload tolerantly (bad JSON counts as ``{}``)
4. Non-negative ``available`` -> nothing to do
5. Dedupe on (item, location, available); a failed correction drops the
   key again so a retry of the same event is processed
6. Fetch the current level from Shopify and decide from that, never from
   the webhook quantity
7. Set on-hand for that single item/location

Security contract:
- Return 401 only for signature failures
- Return 200 for every handled outcome, failures included, so Shopify
  does not retry into the same bug; every non-success outcome is logged
  at WARNING and counted
- Never return stack traces or secrets to the caller
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from stockguard.errors import ShopifyError
from stockguard.inventory.scan import scan_level
from stockguard.security import require_operator
from stockguard.shopify.client import ShopifyClient
from stockguard.shopify.ids import to_gid
from stockguard.webhooks.dedupe import DedupeCache
from stockguard.webhooks.verification import SIGNATURE_HEADER, SignatureVerifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

_SUCCESS_OUTCOMES = {"ignored", "not_negative", "deduped", "not_needed", "fixed"}


@dataclass(frozen=True)
class InventoryEvent:
    """The parts of an inventory level webhook stockguard acts on."""

    inventory_item_id: str
    location_id: str
    available: int


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0


def parse_payload(body: bytes) -> InventoryEvent | None:
    """Parse a verified body. None when item or location is missing.

    Malformed or empty bodies are treated as ``{}``; absent ``available`` is 0.
    """
    try:
        payload = json.loads(body) if body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    item = payload.get("inventory_item_id")
    location = payload.get("location_id")
    if item in (None, "") or location in (None, ""):
        return None
    return InventoryEvent(
        inventory_item_id=str(item),
        location_id=str(location),
        available=_as_int(payload.get("available")),
    )


class WebhookStats:
    """Per-outcome counters for the webhook route."""

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def record(self, outcome: str) -> None:
        self._counts[outcome] += 1

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)


class InventoryWebhookProcessor:
    """Runs the webhook pipeline against explicit collaborators."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        dedupe: DedupeCache,
        client: ShopifyClient,
        stats: WebhookStats | None = None,
        allow_raise_to_committed: bool = False,
        reason: str = "correction",
    ):
        self.verifier = verifier
        self.dedupe = dedupe
        self.client = client
        self.stats = stats or WebhookStats()
        self.allow_raise_to_committed = allow_raise_to_committed
        self.reason = reason

    def _audit(self, outcome: str, event: InventoryEvent | None = None, detail: str = "") -> None:
        self.stats.record(outcome)
        level = logging.INFO if outcome in _SUCCESS_OUTCOMES else logging.WARNING
        logger.log(
            level,
            "INVENTORY_WEBHOOK outcome=%s item=%s location=%s available=%s%s",
            outcome,
            event.inventory_item_id if event else "-",
            event.location_id if event else "-",
            event.available if event else "-",
            f" detail={detail}" if detail else "",
        )

    async def process(self, body: bytes, signature: str | None) -> tuple[int, dict[str, Any]]:
        """Return (status_code, response body). Never raises."""
        if not self.verifier.verify(body, signature):
            self._audit("signature_failed")
            return 401, {"ok": False, "error": "invalid signature"}

        event = parse_payload(body)
        if event is None:
            self._audit("ignored")
            return 200, {"ok": True, "ignored": "missing identifiers"}

        if event.available >= 0:
            self._audit("not_negative", event)
            return 200, {"ok": True, "negative": False, "available": event.available}

        missing = self.client.missing_credentials()
        if missing:
            self._audit("misconfigured", event, ",".join(missing))
            return 200, {"ok": False, "error": f"misconfigured: missing {', '.join(missing)}"}

        if self.dedupe.check_and_mark(event.inventory_item_id, event.location_id, event.available):
            self._audit("deduped", event)
            return 200, {"ok": True, "deduped": True}

        try:
            return await self._correct(event)
        except ShopifyError as e:
            self.dedupe.forget(event.inventory_item_id, event.location_id, event.available)
            self._audit("remote_error", event, type(e).__name__)
            return 200, {"ok": False, "error": str(e)}
        except Exception:
            logger.exception("Webhook correction crashed for item=%s", event.inventory_item_id)
            self.dedupe.forget(event.inventory_item_id, event.location_id, event.available)
            self._audit("internal_error", event)
            return 200, {"ok": False, "error": "internal error"}

    async def _correct(self, event: InventoryEvent) -> tuple[int, dict[str, Any]]:
        item_gid = to_gid("InventoryItem", event.inventory_item_id)
        location_gid = to_gid("Location", event.location_id)

        scan = await scan_level(self.client, item_gid, location_gid, self.allow_raise_to_committed)
        if scan.snapshot is None or not scan.tracked:
            reason = "inventory level not found" if scan.snapshot is None else "inventory item not tracked"
            self._audit("not_needed", event, reason)
            return 200, {"ok": True, "fixed": False, "reason": reason}

        candidate = scan.candidate
        if candidate is None:
            self._audit("not_needed", event)
            return 200, {
                "ok": True,
                "fixed": False,
                "reason": "current quantities need no correction",
                "before": scan.snapshot.to_dict(),
            }

        user_errors = await self.client.set_on_hand(self.reason, [candidate.to_set_quantity()])
        if user_errors:
            self._audit("rejected", event, "; ".join(e.message for e in user_errors))
            return 200, {"ok": False, "userErrors": [e.to_dict() for e in user_errors]}

        self._audit("fixed", event)
        return 200, {
            "ok": True,
            "fixed": True,
            "inventoryItemId": item_gid,
            "locationId": location_gid,
            "setOnHandTo": candidate.target_on_hand,
            "before": scan.snapshot.to_dict(),
        }


@router.post("/webhooks/inventory")
async def inventory_webhook(request: Request):
    """Receive Shopify inventory_levels/update webhooks (signature-verified)."""
    processor: InventoryWebhookProcessor = request.app.state.guard.webhooks
    try:
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER)
        status_code, payload = await processor.process(body, signature)
    except Exception:
        logger.exception("Webhook handler failed before processing")
        processor._audit("internal_error")
        status_code, payload = 200, {"ok": False, "error": "internal error"}
    return JSONResponse(payload, status_code=status_code)


@router.get("/webhooks/status", dependencies=[Depends(require_operator)])
async def webhook_status(request: Request):
    """Webhook outcome counts since start."""
    return {"ok": True, "counts": request.app.state.guard.webhooks.stats.snapshot()}

"""Batch corrector: applies correction candidates in paced chunks.

Semantics:
- Chunks of at most ``batch_size`` candidates, sent strictly in list order
- One ``inventorySetOnHandQuantities`` call per chunk, never concurrent
- A fixed pause after every chunk; chunk N+1 never starts before it ends
- Per-chunk user errors or transport failures are recorded and the run
  continues; chunks already applied stay applied
- No automatic retries
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Sequence

from stockguard.errors import ShopifyError
from stockguard.inventory.models import BatchResult, CorrectionCandidate, UserError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200
DEFAULT_BATCH_DELAY = 0.2


class OnHandSetter(Protocol):
    async def set_on_hand(self, reason: str, quantities: list[dict]) -> list[UserError]: ...


def chunked(items: Sequence[CorrectionCandidate], size: int) -> list[Sequence[CorrectionCandidate]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchCorrector:
    """Sends corrections through a client exposing ``set_on_hand``."""

    def __init__(
        self,
        client: OnHandSetter,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_seconds: float = DEFAULT_BATCH_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch size must be at least 1")
        self._client = client
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def apply(
        self,
        candidates: Sequence[CorrectionCandidate],
        reason: str = "correction",
        batch_size: int | None = None,
    ) -> list[BatchResult]:
        """Apply every candidate once. Returns one result per chunk."""
        results: list[BatchResult] = []
        chunks = chunked(candidates, batch_size or self.batch_size)
        for index, chunk in enumerate(chunks):
            result = BatchResult(index=index, size=len(chunk))
            try:
                result.user_errors = await self._client.set_on_hand(
                    reason, [c.to_set_quantity() for c in chunk]
                )
            except ShopifyError as e:
                result.error = str(e)
            if result.ok:
                logger.info("Correction batch %d/%d applied (%d items)", index + 1, len(chunks), len(chunk))
            else:
                logger.warning(
                    "Correction batch %d/%d failed: error=%s userErrors=%d",
                    index + 1,
                    len(chunks),
                    result.error,
                    len(result.user_errors),
                )
            results.append(result)
            await self._sleep(self.delay_seconds)
        return results


def summarize(results: list[BatchResult]) -> dict:
    """Counts for an HTTP response body."""
    applied = sum(r.size for r in results if r.ok)
    return {
        "batches": len(results),
        "failedBatches": sum(1 for r in results if not r.ok),
        "appliedCount": applied,
        "results": [r.to_dict() for r in results],
    }

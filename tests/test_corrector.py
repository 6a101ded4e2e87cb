"""Tests for the batch corrector.

Covers:
- ceil(N/B) calls, each at most B items, every candidate exactly once, in order
- Pacing sleep after every chunk, sequential sends
- Per-chunk user errors / transport failures recorded, later chunks still sent
"""

from __future__ import annotations

import math
from unittest.mock import AsyncMock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stockguard.errors import ShopifyHTTPError
from stockguard.inventory.corrector import BatchCorrector, chunked, summarize
from stockguard.inventory.models import CorrectionCandidate, InventorySnapshot, UserError


def _candidates(n: int) -> list[CorrectionCandidate]:
    return [
        CorrectionCandidate(
            inventory_item_id=f"gid://shopify/InventoryItem/{i}",
            location_id="gid://shopify/Location/1",
            target_on_hand=0,
            snapshot_before=InventorySnapshot(on_hand=-1, available=-1),
        )
        for i in range(n)
    ]


class RecordingClient:
    def __init__(self, errors_for: dict[int, list[UserError]] | None = None, fail_on: set[int] | None = None):
        self.calls: list[tuple[str, list[dict]]] = []
        self.errors_for = errors_for or {}
        self.fail_on = fail_on or set()

    async def set_on_hand(self, reason: str, quantities: list[dict]) -> list[UserError]:
        index = len(self.calls)
        self.calls.append((reason, quantities))
        if index in self.fail_on:
            raise ShopifyHTTPError(502, "Bad Gateway")
        return self.errors_for.get(index, [])


async def _no_sleep(_: float) -> None:
    return None


class TestChunked:
    @given(n=st.integers(min_value=0, max_value=600), size=st.integers(min_value=1, max_value=250))
    @settings(max_examples=50)
    def test_partition_covers_everything_once(self, n, size):
        items = _candidates(n)
        chunks = chunked(items, size)
        assert len(chunks) == math.ceil(n / size)
        assert all(len(c) <= size for c in chunks)
        assert [c for chunk in chunks for c in chunk] == items

    def test_zero_size_rejected(self):
        with pytest.raises(ValueError):
            chunked(_candidates(3), 0)


class TestBatchCorrector:
    @pytest.mark.asyncio
    async def test_issues_ceil_n_over_b_calls(self):
        client = RecordingClient()
        corrector = BatchCorrector(client, batch_size=200, delay_seconds=0, sleep=_no_sleep)
        results = await corrector.apply(_candidates(450), reason="correction")

        assert len(client.calls) == 3
        assert [len(q) for _, q in client.calls] == [200, 200, 50]
        sent = [q["inventoryItemId"] for _, qs in client.calls for q in qs]
        assert sent == [c.inventory_item_id for c in _candidates(450)]
        assert all(r.ok for r in results)
        assert [r.index for r in results] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_reason_and_quantity_passed(self):
        client = RecordingClient()
        corrector = BatchCorrector(client, batch_size=10, sleep=_no_sleep)
        await corrector.apply(_candidates(1), reason="shrinkage")
        reason, quantities = client.calls[0]
        assert reason == "shrinkage"
        assert quantities[0]["quantity"] == 0

    @pytest.mark.asyncio
    async def test_pacing_after_every_chunk(self):
        client = RecordingClient()
        events: list[str] = []

        async def sleep(seconds: float) -> None:
            events.append(f"sleep:{seconds}")

        original = client.set_on_hand

        async def set_on_hand(reason, quantities):
            events.append("send")
            return await original(reason, quantities)

        client.set_on_hand = set_on_hand
        corrector = BatchCorrector(client, batch_size=2, delay_seconds=0.2, sleep=sleep)
        await corrector.apply(_candidates(5))
        assert events == ["send", "sleep:0.2"] * 3

    @pytest.mark.asyncio
    async def test_user_errors_do_not_abort(self):
        errors = [UserError(field=["input", "setQuantities", "0"], message="Not stocked at location")]
        client = RecordingClient(errors_for={0: errors})
        corrector = BatchCorrector(client, batch_size=2, sleep=_no_sleep)
        results = await corrector.apply(_candidates(4))

        assert len(client.calls) == 2
        assert results[0].ok is False
        assert results[0].user_errors == errors
        assert results[1].ok is True

    @pytest.mark.asyncio
    async def test_transport_failure_recorded_and_continues(self):
        client = RecordingClient(fail_on={1})
        corrector = BatchCorrector(client, batch_size=1, sleep=_no_sleep)
        results = await corrector.apply(_candidates(3))

        assert len(client.calls) == 3
        assert [r.ok for r in results] == [True, False, True]
        assert "502" in results[1].error

    @pytest.mark.asyncio
    async def test_no_retry_of_failed_chunk(self):
        client = AsyncMock()
        client.set_on_hand.side_effect = ShopifyHTTPError(503)
        corrector = BatchCorrector(client, batch_size=5, sleep=_no_sleep)
        results = await corrector.apply(_candidates(5))
        assert client.set_on_hand.await_count == 1
        assert results[0].ok is False

    @pytest.mark.asyncio
    async def test_empty_list_sends_nothing(self):
        client = RecordingClient()
        corrector = BatchCorrector(client, sleep=_no_sleep)
        assert await corrector.apply([]) == []
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_batch_size_override(self):
        client = RecordingClient()
        corrector = BatchCorrector(client, batch_size=200, sleep=_no_sleep)
        await corrector.apply(_candidates(7), batch_size=3)
        assert [len(q) for _, q in client.calls] == [3, 3, 1]

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            BatchCorrector(RecordingClient(), batch_size=0)


class TestSummarize:
    def test_counts(self):
        from stockguard.inventory.models import BatchResult

        results = [
            BatchResult(index=0, size=200),
            BatchResult(index=1, size=50, error="Shopify HTTP 502"),
        ]
        summary = summarize(results)
        assert summary["batches"] == 2
        assert summary["failedBatches"] == 1
        assert summary["appliedCount"] == 200
        assert summary["results"][1]["error"] == "Shopify HTTP 502"

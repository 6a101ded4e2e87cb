"""Exponential backoff with jitter for read-only Shopify calls.

Retries on transient HTTP errors (429, 500, 502, 503, 504) and connection
errors. Respects Retry-After headers. Logs each retry attempt.

Mutations are never routed through here: a correction that failed is
reported, not resent.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

# HTTP status codes that trigger a retry
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


async def with_backoff(
    call: Callable[[], Awaitable[Any]],
    *,
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: float = 0.3,
    label: str = "shopify",
) -> Any:
    """Await ``call()``, retrying transient failures with exponential backoff.

    Args:
        call: Zero-argument coroutine factory; invoked once per attempt.
        max_retries: Retries after the first attempt (0 disables retrying).
        base_delay: Initial delay in seconds.
        max_delay: Maximum delay cap in seconds.
        jitter: Jitter factor (0.0-1.0).
        label: Name used in retry log lines.
    """
    for attempt in range(max_retries + 1):
        try:
            return await call()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status not in RETRYABLE_STATUS_CODES or attempt == max_retries:
                raise
            delay = _compute_delay(attempt, base_delay, max_delay, jitter, e.response)
            logger.warning(
                "Retry %d/%d for %s (HTTP %d), waiting %.1fs",
                attempt + 1,
                max_retries,
                label,
                status,
                delay,
            )
        except (httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError) as e:
            if attempt == max_retries:
                raise
            delay = _compute_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "Retry %d/%d for %s (connection error: %s), waiting %.1fs",
                attempt + 1,
                max_retries,
                label,
                type(e).__name__,
                delay,
            )
        await asyncio.sleep(delay)
    raise RuntimeError("unreachable")  # pragma: no cover


def _compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: float,
    response: httpx.Response | None = None,
) -> float:
    """Compute delay with exponential backoff + jitter, respecting Retry-After."""
    if response is not None:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return min(float(retry_after), max_delay)
            except ValueError:
                pass

    # Exponential backoff: base * 2^attempt
    delay = min(base_delay * (2**attempt), max_delay)

    jitter_amount = delay * jitter
    delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.1, delay)

"""Operator endpoint authentication.

When ``ADMIN_TOKEN`` is configured, operator routes require
``Authorization: Bearer <token>``. Health and the webhook route stay
public (the webhook carries its own HMAC).
"""

from __future__ import annotations

import hmac
import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


def extract_bearer_token(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_operator(request: Request) -> None:
    """FastAPI dependency: constant-time check of the operator token."""
    expected = request.app.state.guard.settings.admin_token
    if not expected:
        return
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning("Operator auth failed for %s %s", request.method, request.url.path)
        raise HTTPException(status_code=401, detail="unauthorized")

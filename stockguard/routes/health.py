"""Liveness and configuration presence checks."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_class=PlainTextResponse)
async def health():
    return "OK"


@router.get("/env-check")
async def env_check(request: Request):
    """Which configuration values are set. Values themselves are never returned."""
    settings = request.app.state.guard.settings
    return {"ok": True, "configured": settings.env_report()}

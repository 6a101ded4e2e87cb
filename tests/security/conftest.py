"""Security test fixtures.

Responsibilities:
- Provides an app with ADMIN_TOKEN configured (`secured_client`)
- Provides make_auth_header and a signed webhook poster
- Scoped to tests/security/ only

The global tests/conftest.py provides settings, the fake Shopify client and
the open (no ADMIN_TOKEN) app.
"""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from helpers import sign
from stockguard.serve import create_app

ADMIN_TOKEN = "operator-token-for-tests"


@pytest.fixture
def secured_client(settings, shopify):
    """TestClient for an app whose operator routes require ADMIN_TOKEN."""
    app = create_app(settings.model_copy(update={"admin_token": ADMIN_TOKEN}), client=shopify)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def make_auth_header():
    def _make(token: str = ADMIN_TOKEN) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def post_webhook(client):
    """POST a payload to the inventory webhook, signed unless told otherwise."""

    def _post(payload, *, signature: str | None = None, raw: bytes | None = None):
        body = raw if raw is not None else json.dumps(payload).encode()
        headers = {"Content-Type": "application/json"}
        sig = sign(body) if signature is None else signature
        if sig:
            headers["X-Shopify-Hmac-Sha256"] = sig
        return client.post("/webhooks/inventory", content=body, headers=headers)

    return _post

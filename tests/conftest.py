"""Shared fixtures for the stockguard test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from helpers import WEBHOOK_SECRET, FakeShopify
from stockguard.config import Settings
from stockguard.serve import create_app


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        shopify_shop="test-shop.myshopify.com",
        shopify_admin_token="shpat_test",
        shopify_webhook_secret=WEBHOOK_SECRET,
        batch_delay_seconds=0,
        bulk_file=tmp_path / "bulk.ndjson",
        admin_token="",
    )


@pytest.fixture()
def shopify() -> FakeShopify:
    return FakeShopify()


@pytest.fixture()
def app(settings: Settings, shopify: FakeShopify):
    return create_app(settings, client=shopify)


@pytest.fixture()
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c

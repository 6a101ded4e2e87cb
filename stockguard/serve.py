"""FastAPI application factory.

Builds the process-owned state (Shopify client, dedupe cache, location
cache, verifier, corrector, exporter) once and hands it to the routes via
``app.state.guard``. Maps stockguard errors to JSON responses so no
endpoint ever returns a bare traceback.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockguard import __version__
from stockguard.config import Settings, get_settings
from stockguard.errors import (
    BulkFileMissingError,
    BulkOperationError,
    ConfigurationError,
    ShopifyError,
)
from stockguard.inventory.corrector import BatchCorrector
from stockguard.routes import bulk, catalog, health, variants
from stockguard.shopify.bulk import BulkExporter
from stockguard.shopify.client import ShopifyClient
from stockguard.shopify.locations import LocationNameCache
from stockguard.webhooks import handlers as webhook_handlers
from stockguard.webhooks.dedupe import DedupeCache
from stockguard.webhooks.handlers import InventoryWebhookProcessor, WebhookStats
from stockguard.webhooks.verification import SignatureVerifier

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Single stream handler on the root logger."""
    root = logging.getLogger()
    if not any(getattr(h, "_stockguard", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._stockguard = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())


@dataclass
class AppState:
    """Everything the handlers share for the life of the process."""

    settings: Settings
    client: ShopifyClient
    dedupe: DedupeCache
    locations: LocationNameCache
    webhooks: InventoryWebhookProcessor
    corrector: BatchCorrector
    exporter: BulkExporter

    @classmethod
    def build(cls, settings: Settings, client: ShopifyClient | None = None) -> AppState:
        client = client or ShopifyClient.from_settings(settings)
        dedupe = DedupeCache(ttl=settings.dedupe_ttl_seconds)
        return cls(
            settings=settings,
            client=client,
            dedupe=dedupe,
            locations=LocationNameCache(client),
            webhooks=InventoryWebhookProcessor(
                verifier=SignatureVerifier(settings.shopify_webhook_secret, settings.key_encodings),
                dedupe=dedupe,
                client=client,
                stats=WebhookStats(),
                allow_raise_to_committed=settings.raise_to_committed,
                reason=settings.correction_reason,
            ),
            corrector=BatchCorrector(client, settings.batch_size, settings.batch_delay_seconds),
            exporter=BulkExporter(client, settings.bulk_file, settings.bulk_mode),
        )


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse({"ok": False, "error": error, **extra}, status_code=status_code)


def install_error_handlers(app: FastAPI) -> None:
    """Convert stockguard and framework errors to ``{ok: false, ...}`` bodies."""

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        detail = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
        return _error(400, "invalid request", detail=detail)

    @app.exception_handler(ConfigurationError)
    async def _config_error(request: Request, exc: ConfigurationError):
        logger.error("Request %s refused: %s", request.url.path, exc)
        return _error(503, str(exc))

    @app.exception_handler(ShopifyError)
    async def _shopify_error(request: Request, exc: ShopifyError):
        logger.warning("Shopify call failed during %s: %s", request.url.path, exc)
        return _error(502, str(exc))

    @app.exception_handler(BulkOperationError)
    async def _bulk_error(request: Request, exc: BulkOperationError):
        return _error(400, str(exc), status=exc.operation)

    @app.exception_handler(BulkFileMissingError)
    async def _bulk_file_missing(request: Request, exc: BulkFileMissingError):
        return _error(400, str(exc))


def create_app(settings: Settings | None = None, client: ShopifyClient | None = None) -> FastAPI:
    """Build the app. ``client`` may be injected (tests, custom transports)."""
    settings = settings or get_settings()
    state = AppState.build(settings, client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = settings.missing_credentials()
        if missing:
            logger.warning("Shopify credentials missing (%s); API-backed routes will refuse", ", ".join(missing))
        if not settings.shopify_webhook_secret:
            logger.warning("SHOPIFY_WEBHOOK_SECRET not set; every webhook will be rejected")
        yield
        await state.client.aclose()

    app = FastAPI(title="stockguard", version=__version__, lifespan=lifespan)
    app.state.guard = state
    install_error_handlers(app)

    app.include_router(health.router)
    app.include_router(webhook_handlers.router)
    app.include_router(variants.router)
    app.include_router(catalog.router)
    app.include_router(bulk.router)

    logger.info("stockguard app created (shop=%s)", settings.shopify_shop or "<unset>")
    return app

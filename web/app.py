"""
FastAPI application for the deal ledger.

Production deployment configuration via environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.clock import Clock, utc_now
from core.store import RecordStore
from utils.config import Config
from utils.log import configure_logging
from web.commission_routes import router as commission_router
from web.deal_routes import router as deal_router
from web.receipt_routes import router as receipt_router
from web.services import build_services


logger = logging.getLogger(__name__)

# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

# CORS configuration - explicit origins only in production
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]


def create_app(
    config: Optional[Config] = None,
    store: Optional[RecordStore] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application config (environment if omitted)
        store: Record store override, used by tests
        clock: Time source override, used by tests
    """
    config = config or Config.load()

    app = FastAPI(
        title="Deal Ledger",
        description="Deal lifecycle, payment reconciliation, commissions and receipts",
        version="0.1.0",
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug and not IS_PRODUCTION,
    )
    app.state.services = build_services(config=config, store=store, clock=clock)

    # Healthchecks: no dependencies, no IO
    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy"}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def on_startup():
        """Create the receipts directory once the app is up."""
        Path(config.receipts_dir).mkdir(parents=True, exist_ok=True)
        logger.info("Deal ledger started (store: %s)", config.store_path)

    app.include_router(deal_router)
    app.include_router(commission_router)
    app.include_router(receipt_router)

    @app.get("/api/health")
    async def api_health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": "0.1.0",
            "environment": "production" if IS_PRODUCTION else "development",
        }

    return app


def _app_from_environment() -> FastAPI:
    config = Config.load()
    configure_logging(config.log_level)
    return create_app(config)


# Create app instance for uvicorn
app = _app_from_environment()

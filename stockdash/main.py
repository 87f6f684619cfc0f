# stockdash/main.py
# Run: uvicorn stockdash.main:create_app --factory
from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockdash.config import Settings
from stockdash.errors import http_exception_handler
from stockdash.logging_conf import setup_logging

# --- Observability ---
from stockdash.observability import metrics_endpoint, timing_middleware

# --- Routers ---
from stockdash.routers import stock  # /stock/quote etc.
from stockdash.schemas import HealthResponse, VersionResponse
from stockdash.services import Services
from stockdash.utils import utc_now_iso
from stockdash.version import SERVICE_NAME, SERVICE_VERSION, version_payload

logger = logging.getLogger("stockdash.main")


async def sweep_forever(services: Services, interval_s: float) -> None:
    """Periodically drop expired cache entries and stale rate windows."""
    while True:
        await asyncio.sleep(interval_s)
        dropped = services.cache.sweep()
        stale = services.limiter.sweep()
        if dropped or stale:
            logger.debug("sweep removed %d cache entries, %d rate windows", dropped, stale)


def create_app(settings: Settings | None = None, *, services: Services | None = None) -> FastAPI:
    """Build the stockdash FastAPI app.

    Args:
        settings: Explicit settings; read from the environment when omitted.
            A missing FINNHUB_API_KEY raises ConfigError here, at startup.
        services: Pre-built stores and clients (tests inject fakes through this).

    Returns:
        A FastAPI app with the /stock endpoints plus /health, /version and /metrics.
    """
    setup_logging()
    if services is None:
        services = Services.build(settings or Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper: asyncio.Task | None = None
        interval = services.settings.sweep_interval_s
        if interval > 0:
            sweeper = asyncio.create_task(sweep_forever(services, interval))
        logger.info("stockdash started (sweep_interval_s=%s)", interval)
        yield
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        await services.aclose()
        logger.info("stockdash stopped")

    app = FastAPI(title="stockdash", version=SERVICE_VERSION, lifespan=lifespan)
    app.state.services = services

    # --- Include routers ---
    app.include_router(stock.router)

    # --- Errors: one {"error": {...}} envelope for every status ---
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # --- Observability ---
    app.middleware("http")(timing_middleware)

    # --- Utility endpoints ---
    @app.get("/health", response_model=HealthResponse)
    def health():
        return {
            "status": "ok",
            "as_of": utc_now_iso(),
            "service": SERVICE_NAME,
            "cache_entries": len(services.cache),
            "rate_limit_keys": len(services.limiter),
            "rate_limit": services.limiter.limit_info,
        }

    @app.get("/version", response_model=VersionResponse)
    def version():
        return VersionResponse(**version_payload())

    @app.get("/metrics")
    def metrics():
        return metrics_endpoint()

    return app

"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, Sentry, and a
lifespan that activates the bridge (HubSpot credential check + cursor reset)
and starts the score-sync scheduler. A failed activation aborts startup.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.requests import Request
from fastapi.responses import Response

from src.crm_bridge.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.crm_bridge.api.v1 import health
from src.crm_bridge.api.v1.router import router as v1_router
from src.crm_bridge.bridge import HubspotBridge
from src.crm_bridge.config import BridgeConfig, get_settings
from src.crm_bridge.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.crm_bridge.core.redis import close_redis, get_deployment_store
from src.crm_bridge.scheduler import ScoreSyncScheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: activate the bridge and start the tick scheduler."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    if settings.SENTRY_DSN:
        init_sentry(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT.value,
            deployment_id=settings.DEPLOYMENT_ID,
        )

    bridge = HubspotBridge(BridgeConfig.from_settings(settings), get_deployment_store())
    try:
        await bridge.setup()
    except Exception:
        log.error("startup.activation_failed", exc_info=True)
        await bridge.close()
        await close_redis()
        raise
    app.state.bridge = bridge

    scheduler = ScoreSyncScheduler(bridge, interval_seconds=settings.SCORE_SYNC_INTERVAL_SECONDS)
    scheduler.start()
    app.state.scheduler = scheduler
    log.info("startup.complete", deployment_id=settings.DEPLOYMENT_ID)

    yield

    scheduler.stop()
    await bridge.close()
    await close_redis()
    log.info("shutdown.complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="CRM Bridge",
        version="0.1.0",
        description="HubSpot contact sync and lead-score reconciliation for PostHog",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(health.router)
    app.include_router(v1_router, prefix="/api/v1")

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()

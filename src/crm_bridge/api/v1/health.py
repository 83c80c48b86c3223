"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready). Readiness
reports whether the bridge was activated and the score-sync scheduler is
running.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.crm_bridge.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(request: Request):
    activated = getattr(request.app.state, "bridge", None) is not None
    scheduler = getattr(request.app.state, "scheduler", None)
    checks = {
        "bridge": "ok" if activated else "not_activated",
        "scheduler": "ok" if scheduler is not None and scheduler.started else "stopped",
    }
    if not activated:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}

"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.crm_bridge.api.v1 import events, jobs

router = APIRouter()

router.include_router(events.router)
router.include_router(jobs.router)

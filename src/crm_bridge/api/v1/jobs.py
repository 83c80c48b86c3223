"""Administrative job endpoints.

- POST /jobs/clear-storage: forget the sync cursor (next page + completion day)
- POST /jobs/score-sync: run one score-sync tick on demand
- GET /sync/cursor: inspect the persisted cursor (API key masked)
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from src.crm_bridge.api.deps import get_bridge
from src.crm_bridge.bridge import HubspotBridge
from src.crm_bridge.core.http import redact_url
from src.crm_bridge.schemas import SyncCursor, TickSummary

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["jobs"])


@router.post("/jobs/clear-storage")
async def clear_storage(bridge: HubspotBridge = Depends(get_bridge)) -> dict:
    await bridge.clear_storage()
    logger.info("jobs.clear_storage")
    return {"status": "ok"}


@router.post("/jobs/score-sync", response_model=TickSummary)
async def run_score_sync(bridge: HubspotBridge = Depends(get_bridge)) -> TickSummary:
    """Run one tick outside the schedule.

    Returns ``skipped_reason="tick_in_flight"`` if a tick is already running.
    """
    return await bridge.run_every_minute()


@router.get("/sync/cursor", response_model=SyncCursor)
async def get_cursor(bridge: HubspotBridge = Depends(get_bridge)) -> SyncCursor:
    snapshot = await bridge.cursor_snapshot()
    if snapshot.next_page_token:
        snapshot.next_page_token = redact_url(snapshot.next_page_token)
    return snapshot

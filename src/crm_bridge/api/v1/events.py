"""Event hook endpoint.

Receives PostHog events and routes them to HubspotBridge.on_event. Returns
200 for every payload, including invalid ones, so the delivering pipeline
never retries an event that was already handled or can never be handled.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from src.crm_bridge.api.deps import get_bridge
from src.crm_bridge.bridge import HubspotBridge
from src.crm_bridge.schemas import InboundEvent

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("")
async def receive_event(
    request: Request,
    bridge: HubspotBridge = Depends(get_bridge),
) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("event_hook.invalid_json")
        return {"status": "invalid"}

    try:
        event = InboundEvent.model_validate(payload)
    except ValidationError as exc:
        logger.warning("event_hook.invalid_event", errors=exc.error_count())
        return {"status": "invalid"}

    outcome = await bridge.on_event(event)
    if outcome is None:
        return {"status": "ignored"}
    return {"status": "processed", "outcome": outcome.value}

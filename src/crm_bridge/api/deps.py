"""FastAPI dependency injection for the bridge instance."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.crm_bridge.bridge import HubspotBridge


async def get_bridge(request: Request) -> HubspotBridge:
    """Return the bridge built during application startup.

    Raises:
        HTTPException(503): The bridge has not been activated.
    """
    bridge = getattr(request.app.state, "bridge", None)
    if bridge is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bridge is not activated",
        )
    return bridge

"""Activation: verify HubSpot credentials, then reset the sync cursor."""

from __future__ import annotations

import structlog

from src.crm_bridge.clients.hubspot import HubspotClient
from src.crm_bridge.core.http import status_ok
from src.crm_bridge.errors import SetupError, TransportError
from src.crm_bridge.sync.cursor import SyncCursorStore

logger = structlog.get_logger(__name__)

SETUP_FAILED_MESSAGE = "Unable to connect to Hubspot. Please make sure your API key is correct."


async def verify_and_reset(hubspot: HubspotClient, cursor: SyncCursorStore) -> None:
    """Check HubSpot credentials with a one-record list and clear the cursor on success.

    Raises:
        SetupError: The check failed or returned a non-2xx status.
    """
    try:
        response = await hubspot.list_contacts(hubspot.credential_check_url())
    except TransportError as exc:
        logger.error("setup.credential_check_transport_failed", error=str(exc))
        raise SetupError(SETUP_FAILED_MESSAGE) from exc

    if not status_ok(response):
        logger.error("setup.credential_check_rejected", status_code=response.status_code)
        raise SetupError(SETUP_FAILED_MESSAGE)

    await cursor.clear()
    logger.info("setup.verified")

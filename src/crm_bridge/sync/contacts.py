"""Contact upsert: create in HubSpot, fall back to update on conflict.

HubSpot answers a duplicate create with 409 and a message such as
``Contact already exists. Existing ID: 12345``. The id is parsed out and the
same payload is sent as an update to that record. The follow-up update is
best effort: its failure is logged and reported as an outcome, never raised.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

from src.crm_bridge.clients.hubspot import HubspotClient
from src.crm_bridge.core.http import safe_json, status_ok
from src.crm_bridge.core.monitoring import contact_upserts_total
from src.crm_bridge.errors import TransportError
from src.crm_bridge.schemas import UpsertOutcome

logger = structlog.get_logger(__name__)

EXISTING_ID_RE = re.compile(r"Existing ID: ([0-9]+)")


def parse_existing_id(message: str | None) -> str | None:
    """Extract the record id from a 409 conflict message."""
    if not message:
        return None
    match = EXISTING_ID_RE.search(message)
    return match.group(1) if match else None


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        return str(body.get("message") or "")
    return ""


class ContactUpsertEngine:
    """Creates HubSpot contacts, converting duplicate conflicts into updates."""

    def __init__(self, hubspot: HubspotClient) -> None:
        self._hubspot = hubspot

    async def upsert(self, email: str, properties: dict[str, Any]) -> UpsertOutcome:
        """Create or update the contact for ``email``.

        Args:
            email: Contact email; always sent as the ``email`` property.
            properties: Mapped HubSpot properties.

        Returns:
            The UpsertOutcome. Transport failures are reported as FAILED.
        """
        outcome = await self._upsert(email, {"email": email, **properties})
        contact_upserts_total.labels(outcome=outcome.value).inc()
        return outcome

    async def _upsert(self, email: str, payload: dict[str, Any]) -> UpsertOutcome:
        try:
            response = await self._hubspot.create_contact(payload)
        except TransportError as exc:
            logger.error("contact_upsert.create_transport_failed", email=email, error=str(exc))
            return UpsertOutcome.FAILED

        body = safe_json(response)
        is_error = isinstance(body, dict) and body.get("status") == "error"
        if status_ok(response) and not is_error:
            logger.info("contact_upsert.created", email=email)
            return UpsertOutcome.CREATED

        message = _error_message(body)
        logger.warning(
            "contact_upsert.create_failed",
            email=email,
            status_code=response.status_code,
            message=message,
        )
        if response.status_code != 409:
            return UpsertOutcome.FAILED

        existing_id = parse_existing_id(message)
        if existing_id is None:
            logger.warning("contact_upsert.conflict_id_missing", email=email, message=message)
            return UpsertOutcome.CONFLICT_UNRESOLVED

        logger.info("contact_upsert.updating_existing", email=email, record_id=existing_id)
        return await self._update(email, existing_id, payload)

    async def _update(self, email: str, record_id: str, payload: dict[str, Any]) -> UpsertOutcome:
        try:
            response = await self._hubspot.update_contact(record_id, payload)
        except TransportError as exc:
            logger.error(
                "contact_upsert.update_transport_failed",
                email=email,
                record_id=record_id,
                error=str(exc),
            )
            return UpsertOutcome.UPDATE_FAILED

        if not status_ok(response):
            logger.warning(
                "contact_upsert.update_failed",
                email=email,
                record_id=record_id,
                status_code=response.status_code,
                message=_error_message(safe_json(response)),
            )
            return UpsertOutcome.UPDATE_FAILED

        logger.info("contact_upsert.updated", email=email, record_id=record_id)
        return UpsertOutcome.UPDATED

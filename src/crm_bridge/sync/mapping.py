"""PostHog -> HubSpot property mapping for contact upserts.

Defines:
- HUBSPOT_PROPERTY_MAP: built-in aliases for the standard contact fields.
- map_properties(): applies the built-in table, then user mappings.
- day_start_millis(): the HubSpot date-property format (UTC midnight, epoch ms).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from src.crm_bridge.schemas import PropertyMapping

logger = structlog.get_logger(__name__)


# ── Built-in Mappings ──────────────────────────────────────────────────────
# Several aliases may point at one target. The table is walked in order, so
# when more than one alias is present the later entry wins regardless of how
# the event's properties were ordered.

HUBSPOT_PROPERTY_MAP: dict[str, str] = {
    "companyName": "company",
    "company_name": "company",
    "company": "company",
    "lastName": "lastname",
    "last_name": "lastname",
    "lastname": "lastname",
    "firstName": "firstname",
    "first_name": "firstname",
    "firstname": "firstname",
    "phone_number": "phone",
    "phoneNumber": "phone",
    "phone": "phone",
    "website": "website",
    "domain": "website",
    "company_website": "website",
    "companyWebsite": "website",
}

# User mappings from these sources take the event send time instead of a property.
TIMESTAMP_SOURCES = frozenset({"sent_at", "created_at"})


def day_start_millis(moment: datetime) -> int:
    """Truncate to UTC midnight and return milliseconds since the epoch."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    day = moment.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(day.timestamp()) * 1000


def map_properties(
    properties: dict[str, Any],
    mappings: list[PropertyMapping] | None = None,
    sent_at: datetime | None = None,
) -> dict[str, Any]:
    """Translate merged event properties into HubSpot contact fields.

    Args:
        properties: ``$set`` merged with event properties.
        mappings: User ``source:target`` pairs, applied after the built-ins.
        sent_at: Event send time, used for ``sent_at``/``created_at`` sources.

    Returns:
        Flat dict of HubSpot field name to value. Unmapped keys are dropped.
    """
    result: dict[str, Any] = {}

    for source, target in HUBSPOT_PROPERTY_MAP.items():
        if source in properties:
            result[target] = properties[source]

    for mapping in mappings or []:
        if mapping.source in TIMESTAMP_SOURCES:
            if sent_at is None:
                logger.warning("mapping.no_send_time", target=mapping.target)
                continue
            result[mapping.target] = day_start_millis(sent_at)
        elif mapping.source in properties:
            result[mapping.target] = properties[mapping.source]

    return result

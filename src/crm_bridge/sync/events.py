"""Event hook: turn qualifying PostHog events into HubSpot contact upserts."""

from __future__ import annotations

import structlog

from src.crm_bridge.config import BridgeConfig
from src.crm_bridge.schemas import InboundEvent, UpsertOutcome
from src.crm_bridge.sync.contacts import ContactUpsertEngine
from src.crm_bridge.sync.email import extract_email, is_ignored_domain
from src.crm_bridge.sync.mapping import map_properties

logger = structlog.get_logger(__name__)


async def process_event(
    event: InboundEvent,
    config: BridgeConfig,
    engine: ContactUpsertEngine,
) -> UpsertOutcome | None:
    """Upsert a HubSpot contact for ``event`` if it qualifies.

    Returns None when the event is filtered out: not a triggering event,
    no valid email, or an ignored email domain.
    """
    if event.name not in config.triggering_events:
        return None

    email = extract_email(event)
    if email is None:
        logger.debug("event_hook.no_email", event_name=event.name)
        return None

    if is_ignored_domain(email, config.ignored_domains):
        logger.info("event_hook.ignored_domain", email=email)
        return None

    properties = map_properties(
        event.merged_properties(),
        config.property_mappings,
        sent_at=event.sent_at or event.timestamp,
    )
    return await engine.upsert(email, properties)

"""Synchronization engine -- HubSpot contact upserts and score reconciliation.

- process_event / ContactUpsertEngine: PostHog events -> HubSpot contacts,
  with 409 conflicts converted into updates
- ScoreReconciler: paginated HubSpot -> PostHog score pull, one page per tick
- SyncCursorStore: resumable cursor persisted in a KeyValueStore
- map_properties / extract_email: property mapping and email extraction
- verify_and_reset: activation credential check
"""

from src.crm_bridge.sync.contacts import ContactUpsertEngine, parse_existing_id
from src.crm_bridge.sync.cursor import SyncCursorStore
from src.crm_bridge.sync.email import extract_email, is_email
from src.crm_bridge.sync.events import process_event
from src.crm_bridge.sync.mapping import HUBSPOT_PROPERTY_MAP, map_properties
from src.crm_bridge.sync.scores import ScoreReconciler, parse_score
from src.crm_bridge.sync.setup import verify_and_reset

__all__ = [
    "ContactUpsertEngine",
    "HUBSPOT_PROPERTY_MAP",
    "ScoreReconciler",
    "SyncCursorStore",
    "extract_email",
    "is_email",
    "map_properties",
    "parse_existing_id",
    "parse_score",
    "process_event",
    "verify_and_reset",
]

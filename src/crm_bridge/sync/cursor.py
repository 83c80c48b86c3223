"""Paginated sync cursor persisted in a KeyValueStore.

Two keys make the score sync resumable across independent ticks:
- NEXT_CONTACT_BATCH_KEY: opaque URL of the next HubSpot contacts page
- SYNC_LAST_COMPLETED_DATE_KEY: ISO date of the last completed full pass

The store, not process memory, is the source of truth. The cursor is read
once at the start of a tick and written once at the end.
"""

from __future__ import annotations

from datetime import date

import structlog

from src.crm_bridge.core.store import KeyValueStore
from src.crm_bridge.schemas import SyncCursor

logger = structlog.get_logger(__name__)

NEXT_CONTACT_BATCH_KEY = "next_hubspot_contacts_url"
SYNC_LAST_COMPLETED_DATE_KEY = "last_job_complete_day"


class SyncCursorStore:
    """Read/advance/complete operations over the persisted cursor."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def get(self) -> str | None:
        """Return the stored next-page token, or None."""
        return await self._store.get(NEXT_CONTACT_BATCH_KEY) or None

    async def advance(self, token: str | None) -> None:
        """Persist the next-page token; None clears it."""
        if token:
            await self._store.set(NEXT_CONTACT_BATCH_KEY, token)
        else:
            await self._store.delete(NEXT_CONTACT_BATCH_KEY)

    async def complete_day(self, day: date) -> None:
        """Clear the token and stamp ``day`` as fully synced."""
        await self._store.delete(NEXT_CONTACT_BATCH_KEY)
        await self._store.set(SYNC_LAST_COMPLETED_DATE_KEY, day.isoformat())
        logger.info("sync_cursor.day_completed", day=day.isoformat())

    async def last_completed_date(self) -> date | None:
        raw = await self._store.get(SYNC_LAST_COMPLETED_DATE_KEY)
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            logger.warning("sync_cursor.bad_completion_date", value=raw)
            return None

    async def snapshot(self) -> SyncCursor:
        return SyncCursor(
            next_page_token=await self.get(),
            last_completed_date=await self.last_completed_date(),
        )

    async def clear(self) -> None:
        """Forget both keys (administrative reset)."""
        await self._store.delete(NEXT_CONTACT_BATCH_KEY)
        await self._store.delete(SYNC_LAST_COMPLETED_DATE_KEY)
        logger.info("sync_cursor.cleared")

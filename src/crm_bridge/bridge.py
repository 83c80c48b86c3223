"""HubspotBridge -- the host-facing facade over the sync engine.

Exposes the lifecycle hooks the host runtime calls:
- setup(): activation credential check + cursor reset (raises SetupError)
- on_event(): event hook, contact upsert
- run_every_minute(): one score-sync tick, never two at once
- clear_storage(): administrative cursor reset
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import date

import structlog

from src.crm_bridge.clients.hubspot import HubspotClient
from src.crm_bridge.clients.posthog import PosthogClient
from src.crm_bridge.config import BridgeConfig
from src.crm_bridge.core.http import ResilientClient
from src.crm_bridge.core.store import KeyValueStore
from src.crm_bridge.schemas import InboundEvent, SyncCursor, TickSummary, UpsertOutcome
from src.crm_bridge.sync.contacts import ContactUpsertEngine
from src.crm_bridge.sync.cursor import SyncCursorStore
from src.crm_bridge.sync.events import process_event
from src.crm_bridge.sync.scores import ScoreReconciler, utc_today
from src.crm_bridge.sync.setup import verify_and_reset

logger = structlog.get_logger(__name__)


class HubspotBridge:
    """Wires configuration, HTTP, cursor store and engines together.

    Args:
        config: Parsed bridge configuration.
        store: Key-value store holding the sync cursor (owned by the host).
        http: Optional resilient client; built from config when omitted.
        today: UTC date provider for the day-level completion guard.
    """

    def __init__(
        self,
        config: BridgeConfig,
        store: KeyValueStore,
        http: ResilientClient | None = None,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._config = config
        self._http = http or ResilientClient(timeout=config.http_timeout)
        self._cursor = SyncCursorStore(store)
        self._hubspot = HubspotClient(self._http, config.hubspot_api_key, config.hubspot_base_url)
        self._contacts = ContactUpsertEngine(self._hubspot)
        self._tick_lock = asyncio.Lock()

        self._reconciler: ScoreReconciler | None = None
        if config.sync_scores_enabled:
            posthog = PosthogClient(
                self._http,
                config.posthog_url,
                config.posthog_api_token,
                config.posthog_project_token,
            )
            self._reconciler = ScoreReconciler(self._hubspot, posthog, self._cursor, today=today)

    @property
    def cursor(self) -> SyncCursorStore:
        return self._cursor

    async def setup(self) -> None:
        await verify_and_reset(self._hubspot, self._cursor)
        logger.info(
            "bridge.activated",
            triggering_events=self._config.triggering_events,
            sync_scores=self._config.sync_scores_enabled,
        )

    async def on_event(self, event: InboundEvent) -> UpsertOutcome | None:
        return await process_event(event, self._config, self._contacts)

    async def run_every_minute(self) -> TickSummary:
        if self._reconciler is None:
            logger.info("bridge.score_sync_disabled", reason="posthog config not set")
            return TickSummary(skipped_reason="score_sync_disabled")
        # Scheduled and on-demand ticks share this lock; a tick never waits.
        if self._tick_lock.locked():
            logger.info("bridge.tick_in_flight")
            return TickSummary(skipped_reason="tick_in_flight")
        async with self._tick_lock:
            return await self._reconciler.run_tick()

    async def clear_storage(self) -> None:
        await self._cursor.clear()

    async def cursor_snapshot(self) -> SyncCursor:
        return await self._cursor.snapshot()

    async def close(self) -> None:
        await self._http.aclose()

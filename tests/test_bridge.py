"""Tests for activation, the HubspotBridge facade, and the tick scheduler."""

from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import AsyncMock

import httpx
import pytest

from src.crm_bridge.bridge import HubspotBridge
from src.crm_bridge.clients.hubspot import HubspotClient
from src.crm_bridge.core.store import InMemoryKeyValueStore
from src.crm_bridge.errors import SetupError
from src.crm_bridge.scheduler import JOB_ID, ScoreSyncScheduler
from src.crm_bridge.schemas import InboundEvent, TickSummary, UpsertOutcome
from src.crm_bridge.sync.cursor import NEXT_CONTACT_BATCH_KEY, SYNC_LAST_COMPLETED_DATE_KEY
from src.crm_bridge.sync.setup import SETUP_FAILED_MESSAGE, verify_and_reset

from tests.fakes import API_KEY, HUBSPOT_URL, TODAY

CONTACTS = "/crm/v3/objects/contacts"


@pytest.fixture
def seeded_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(
        {NEXT_CONTACT_BATCH_KEY: "https://old-page", SYNC_LAST_COMPLETED_DATE_KEY: "2026-03-14"}
    )


class _GatedStore(InMemoryKeyValueStore):
    """Holds the first read until released, keeping a tick in flight."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def get(self, key: str) -> str | None:
        await self.release.wait()
        return await super().get(key)


class TestVerifyAndReset:
    async def test_credential_check_success_clears_cursor(self, http, api, cursor):
        api.route("GET", CONTACTS, httpx.Response(200, json={"results": []}))
        await cursor.advance("https://old-page")
        await cursor.complete_day(TODAY)

        await verify_and_reset(HubspotClient(http, API_KEY, HUBSPOT_URL), cursor)

        (check,) = api.requests
        assert check.url.params["limit"] == "1"
        assert check.url.params["hapikey"] == API_KEY
        assert await cursor.get() is None
        assert await cursor.last_completed_date() is None

    async def test_credential_check_rejected_raises(self, http, api, cursor):
        api.route("GET", CONTACTS, httpx.Response(401, json={"status": "error"}))
        await cursor.advance("https://old-page")

        with pytest.raises(SetupError, match="API key is correct"):
            await verify_and_reset(HubspotClient(http, API_KEY, HUBSPOT_URL), cursor)

        assert await cursor.get() == "https://old-page"

    async def test_credential_check_transport_failure_raises(self, http, api, cursor):
        api.route("GET", CONTACTS, httpx.ConnectError("down"))

        with pytest.raises(SetupError) as exc_info:
            await verify_and_reset(HubspotClient(http, API_KEY, HUBSPOT_URL), cursor)

        assert str(exc_info.value) == SETUP_FAILED_MESSAGE
        assert len(api.requests) == 2


class TestHubspotBridge:
    async def test_setup_and_event(self, http, api, config, seeded_store):
        api.route("GET", CONTACTS, httpx.Response(200, json={"results": []}))
        api.route("POST", CONTACTS, httpx.Response(201, json={"id": "1"}))
        bridge = HubspotBridge(config, seeded_store, http=http)

        await bridge.setup()
        outcome = await bridge.on_event(
            InboundEvent.model_validate({"event": "identify", "distinct_id": "a@b.com"})
        )

        assert outcome == UpsertOutcome.CREATED
        assert await seeded_store.get(NEXT_CONTACT_BATCH_KEY) is None

    async def test_score_sync_disabled_without_posthog_config(self, http, api, config, store):
        config = config.model_copy(update={"posthog_api_token": ""})
        bridge = HubspotBridge(config, store, http=http)

        summary = await bridge.run_every_minute()

        assert summary.skipped_reason == "score_sync_disabled"
        assert api.requests == []

    async def test_tick_uses_injected_clock(self, http, api, config, store):
        api.route("POST", "/capture/", httpx.Response(200, json={}))
        api.route("GET", CONTACTS, httpx.Response(200, json={"results": []}))
        bridge = HubspotBridge(config, store, http=http, today=lambda: date(2026, 1, 2))

        summary = await bridge.run_every_minute()
        snapshot = await bridge.cursor_snapshot()

        assert summary.full_sync_completed is True
        assert snapshot.last_completed_date == date(2026, 1, 2)

    async def test_concurrent_tick_is_skipped(self, http, api, config):
        api.route("POST", "/capture/", httpx.Response(200, json={}))
        api.route("GET", CONTACTS, httpx.Response(200, json={"results": []}))
        store = _GatedStore()
        bridge = HubspotBridge(config, store, http=http, today=lambda: TODAY)

        first = asyncio.create_task(bridge.run_every_minute())
        await asyncio.sleep(0)
        second = await bridge.run_every_minute()
        store.release.set()
        summary = await first

        assert second.skipped_reason == "tick_in_flight"
        assert summary.full_sync_completed is True
        assert len(api.sent("GET", CONTACTS)) == 1

    async def test_clear_storage(self, http, config, seeded_store):
        bridge = HubspotBridge(config, seeded_store, http=http)

        await bridge.clear_storage()

        assert await seeded_store.get(NEXT_CONTACT_BATCH_KEY) is None
        assert await seeded_store.get(SYNC_LAST_COMPLETED_DATE_KEY) is None


class TestScoreSyncScheduler:
    async def test_start_registers_single_instance_job(self):
        bridge = AsyncMock(spec=HubspotBridge)
        scheduler = ScoreSyncScheduler(bridge, interval_seconds=60)

        assert scheduler.start() is True
        try:
            job = scheduler._scheduler.get_job(JOB_ID)
            assert job is not None
            assert job.max_instances == 1
            assert job.coalesce is True
        finally:
            scheduler.stop()

        assert scheduler.started is False

    async def test_tick_runs_bridge(self):
        bridge = AsyncMock(spec=HubspotBridge)
        bridge.run_every_minute.return_value = TickSummary(updated=2)

        await ScoreSyncScheduler(bridge)._run_tick()

        bridge.run_every_minute.assert_awaited_once()

    async def test_tick_failure_is_contained(self):
        bridge = AsyncMock(spec=HubspotBridge)
        bridge.run_every_minute.side_effect = RuntimeError("redis down")

        await ScoreSyncScheduler(bridge)._run_tick()

        bridge.run_every_minute.assert_awaited_once()

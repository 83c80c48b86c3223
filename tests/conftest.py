"""Shared fixtures for the sync bridge tests.

Provides:
- api: FakeApi recording every outbound request (no real network)
- http: ResilientClient wired to the FakeApi
- store / cursor: in-memory cursor storage
- config: BridgeConfig with HubSpot and PostHog configured
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from src.crm_bridge.config import BridgeConfig
from src.crm_bridge.core.http import ResilientClient
from src.crm_bridge.core.store import InMemoryKeyValueStore
from src.crm_bridge.sync.cursor import SyncCursorStore
from tests.fakes import API_KEY, HUBSPOT_URL, POSTHOG_URL, FakeApi


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest_asyncio.fixture
async def http(api: FakeApi) -> AsyncGenerator[ResilientClient, None]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(api))
    yield ResilientClient(client=client)
    await client.aclose()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def cursor(store: InMemoryKeyValueStore) -> SyncCursorStore:
    return SyncCursorStore(store)


@pytest.fixture
def config() -> BridgeConfig:
    return BridgeConfig(
        hubspot_api_key=API_KEY,
        hubspot_base_url=HUBSPOT_URL,
        triggering_events=["identify"],
        posthog_url=POSTHOG_URL,
        posthog_api_token="personal-token",
        posthog_project_token="project-token",
    )

"""Async client for the HubSpot CRM v3 contacts API.

Authentication is the ``hapikey`` query string. Pagination links returned
by HubSpot omit it, so next_page_token() re-appends it; the resulting URL is
stored verbatim in the sync cursor.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from src.crm_bridge.core.http import ResilientClient

logger = structlog.get_logger(__name__)

CONTACTS_PATH = "/crm/v3/objects/contacts"
SCORE_PROPERTIES = ("email", "hubspotscore")
PAGE_SIZE = 100

_JSON_HEADERS = {"Content-Type": "application/json"}


class HubspotClient:
    """HubSpot contacts list/create/update.

    Args:
        http: Shared resilient HTTP client.
        api_key: HubSpot API key.
        base_url: API root, ``https://api.hubapi.com`` in production.
    """

    def __init__(
        self,
        http: ResilientClient,
        api_key: str,
        base_url: str = "https://api.hubapi.com",
    ) -> None:
        self._http = http
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    @property
    def auth(self) -> str:
        return f"hapikey={self._api_key}"

    @property
    def contacts_url(self) -> str:
        return f"{self._base_url}{CONTACTS_PATH}"

    def list_url(self, limit: int, properties: tuple[str, ...] = ()) -> str:
        query: dict[str, Any] = {
            "limit": limit,
            "paginateAssociations": "false",
            "archived": "false",
        }
        url = f"{self.contacts_url}?{urlencode(query)}&{self.auth}"
        if properties:
            url += f"&properties={','.join(properties)}"
        return url

    def first_page_url(self) -> str:
        """Fresh full-sync request: up to PAGE_SIZE contacts with email and score."""
        return self.list_url(PAGE_SIZE, SCORE_PROPERTIES)

    def credential_check_url(self) -> str:
        """Minimal one-record list used to verify credentials."""
        return self.list_url(1)

    def next_page_token(self, link: str | None) -> str | None:
        if not link:
            return None
        return f"{link}&{self.auth}"

    async def list_contacts(self, url: str) -> httpx.Response:
        return await self._http.get(url)

    async def create_contact(self, properties: dict[str, Any]) -> httpx.Response:
        return await self._http.post(
            f"{self.contacts_url}?{self.auth}",
            json={"properties": properties},
            headers=_JSON_HEADERS,
        )

    async def update_contact(self, record_id: str, properties: dict[str, Any]) -> httpx.Response:
        return await self._http.patch(
            f"{self.contacts_url}/{record_id}?{self.auth}",
            json={"properties": properties},
            headers=_JSON_HEADERS,
        )

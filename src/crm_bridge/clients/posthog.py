"""Async client for the PostHog person and capture APIs.

Person endpoints use the personal API token as a Bearer header and the
project token as a query parameter. capture() is fire-and-forget: analytics
events about the sync must never break the sync itself.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from src.crm_bridge.core.http import ResilientClient, safe_json, status_ok
from src.crm_bridge.errors import AnalyticsError, TransportError
from src.crm_bridge.schemas import Malformed, PersonSearchResult, parse_person_search

logger = structlog.get_logger(__name__)

CAPTURE_DISTINCT_ID = "crm-bridge"


class PosthogClient:
    """PostHog person lookup/patch and event capture.

    Args:
        http: Shared resilient HTTP client.
        url: PostHog instance URL.
        api_token: Personal API token (Bearer).
        project_token: Project API key.
    """

    def __init__(self, http: ResilientClient, url: str, api_token: str, project_token: str) -> None:
        self._http = http
        self._url = url.rstrip("/")
        self._api_token = api_token
        self._project_token = project_token

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def find_persons(self, email: str) -> PersonSearchResult | Malformed:
        """Look up persons whose ``email`` property matches.

        Raises:
            AnalyticsError: Non-2xx response.
            TransportError: Network failure after the retry.
        """
        query = urlencode({"token": self._project_token, "email": email})
        response = await self._http.get(f"{self._url}/api/person/?{query}", headers=self._headers)
        body = safe_json(response)
        if not status_ok(response):
            message = body.get("detail", "") if isinstance(body, dict) else ""
            raise AnalyticsError(response.status_code, str(message))
        return parse_person_search(body)

    async def patch_person(self, person_id: int | str, properties: dict[str, Any]) -> httpx.Response:
        query = urlencode({"token": self._project_token})
        return await self._http.patch(
            f"{self._url}/api/person/{person_id}/?{query}",
            json={"properties": properties},
            headers=self._headers,
        )

    async def capture(
        self,
        event: str,
        properties: dict[str, Any] | None = None,
        distinct_id: str = CAPTURE_DISTINCT_ID,
    ) -> None:
        payload = {
            "api_key": self._project_token,
            "event": event,
            "distinct_id": distinct_id,
            "properties": properties or {},
        }
        try:
            response = await self._http.post(f"{self._url}/capture/", json=payload)
        except TransportError as exc:
            logger.warning("posthog.capture_failed", posthog_event=event, error=str(exc))
            return
        if not status_ok(response):
            logger.warning(
                "posthog.capture_rejected",
                posthog_event=event,
                status_code=response.status_code,
            )

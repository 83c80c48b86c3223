"""Test doubles shared across the bridge tests.

FakeApi routes requests by (method, path) behind an httpx.MockTransport and
records them in order, so tests assert on exactly what went over the wire.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any

import httpx

HUBSPOT_URL = "https://api.hubapi.com"
POSTHOG_URL = "https://posthog.test"
API_KEY = "test-key"
TODAY = date(2026, 3, 14)


def body_of(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


class FakeApi:
    """Routes requests by (method, path) and records them in order.

    Unrouted requests get a 404. A route may be a Response, a callable
    taking the request, or an exception instance to raise.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def route(self, method: str, path: str, *responses: Any) -> None:
        """Queue responses for a route; the last one repeats."""
        self._routes[(method, path)] = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "not found"})
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(request)
        return result

    def sent(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def captured_events(self) -> list[str]:
        return [body_of(r)["event"] for r in self.sent("POST", "/capture/")]

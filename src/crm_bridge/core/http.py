"""Resilient async HTTP client shared by the HubSpot and PostHog clients.

Policy: a transport-level failure (connection refused, reset, timeout) is
retried exactly once with identical parameters. A second failure raises
TransportError naming the method and URL. HTTP error statuses are returned
to the caller untouched; status_ok() is the single success predicate.
"""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt

from src.crm_bridge.core.monitoring import http_retries_total
from src.crm_bridge.errors import TransportError

logger = structlog.get_logger(__name__)

_SECRET_QS = re.compile(r"(hapikey=)[^&]*")


def redact_url(url: str) -> str:
    """Mask the HubSpot API key in a URL before it reaches a log line."""
    return _SECRET_QS.sub(r"\1***", url)


def status_ok(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def safe_json(response: httpx.Response) -> Any:
    """Decode a JSON body, returning {} when the body is empty or not JSON."""
    try:
        return response.json()
    except ValueError:
        return {}


def _log_retry(retry_state: RetryCallState) -> None:
    method, url = retry_state.args[1], retry_state.args[2]
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    http_retries_total.labels(method=method).inc()
    logger.warning(
        "http.transport_retry",
        method=method,
        url=redact_url(url),
        error=str(exc),
    )


# One retry on transport failure only; no backoff.
_transport_retry = retry(
    stop=stop_after_attempt(2),
    retry=retry_if_exception_type(httpx.TransportError),
    before_sleep=_log_retry,
    reraise=True,
)


class ResilientClient:
    """Thin wrapper over httpx.AsyncClient applying the single-retry policy.

    Args:
        timeout: Per-request timeout in seconds, enforced by httpx.
        client: Optional pre-built AsyncClient (tests inject one with a
            MockTransport). When given, the caller owns its lifecycle.
    """

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @_transport_retry
    async def _send(
        self,
        method: str,
        url: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self._client.request(method, url, json=json, headers=headers)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request, retrying once on transport failure.

        Raises:
            TransportError: Both attempts failed at the transport level.
        """
        try:
            return await self._send(method, url, json, headers)
        except httpx.TransportError as exc:
            logger.error(
                "http.transport_failed",
                method=method,
                url=redact_url(url),
                error=str(exc),
            )
            raise TransportError(method, redact_url(url)) from exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

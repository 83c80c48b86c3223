"""Exception taxonomy for the sync bridge.

Only SetupError is meant to reach the host runtime. TransportError is raised
by the HTTP layer and caught by whichever sync operation issued the call.
Non-2xx responses are not exceptions; callers inspect them with status_ok().
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""


class TransportError(BridgeError):
    """Network-level failure that survived the single retry."""

    def __init__(self, method: str, url: str) -> None:
        self.method = method
        self.url = url
        super().__init__(f"{method} request to {url} failed.")


class SetupError(BridgeError):
    """Activation failed; the integration must not start."""


class AnalyticsError(BridgeError):
    """PostHog answered a person lookup with a non-2xx status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(f"PostHog request failed with status {status_code}: {message}")


class MalformedResponseError(BridgeError):
    """An external response body failed validation."""

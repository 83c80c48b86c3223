"""Outbound API clients for HubSpot and PostHog.

Both clients send every request through the shared ResilientClient, so they
inherit its single-retry transport policy.
"""

from src.crm_bridge.clients.hubspot import HubspotClient
from src.crm_bridge.clients.posthog import PosthogClient

__all__ = ["HubspotClient", "PosthogClient"]

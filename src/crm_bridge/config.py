"""Application configuration via Pydantic BaseSettings.

Settings holds the raw environment values. BridgeConfig is the typed view
built once per invocation: comma/colon-separated options are parsed into
lists here so the sync code never re-parses strings per item.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

import structlog
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.crm_bridge.schemas import PropertyMapping

logger = structlog.get_logger(__name__)


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # HubSpot
    HUBSPOT_API_KEY: str = ""
    HUBSPOT_BASE_URL: str = "https://api.hubapi.com"

    # Event hook
    TRIGGERING_EVENTS: str = "$identify"
    ADDITIONAL_PROPERTY_MAPPINGS: str = ""
    IGNORED_EMAILS: str = ""

    # PostHog (score sync is enabled only when all three are set)
    POSTHOG_URL: str = ""
    POSTHOG_API_TOKEN: str = ""
    POSTHOG_PROJECT_TOKEN: str = ""

    # Cursor store
    REDIS_URL: str = "redis://localhost:6379/0"
    DEPLOYMENT_ID: str = "default"

    # Scheduling / transport
    SCORE_SYNC_INTERVAL_SECONDS: int = 60
    HTTP_TIMEOUT: float = 30.0

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Monitoring
    SENTRY_DSN: str = ""


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()


def split_list(raw: str | None) -> list[str]:
    """Split a comma-separated option, dropping blank entries."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_property_mappings(raw: str | None) -> list[PropertyMapping]:
    """Parse ``src:dst,src2:dst2`` into PropertyMapping pairs.

    Entries without a ``:`` or with an empty side are skipped.
    """
    mappings: list[PropertyMapping] = []
    for entry in split_list(raw):
        source, sep, target = entry.partition(":")
        source, target = source.strip(), target.strip()
        if not sep or not source or not target:
            logger.debug("config.mapping_skipped", entry=entry)
            continue
        mappings.append(PropertyMapping(source=source, target=target))
    return mappings


class BridgeConfig(BaseModel):
    """Typed per-invocation configuration derived from Settings."""

    hubspot_api_key: str
    hubspot_base_url: str = "https://api.hubapi.com"
    triggering_events: list[str] = Field(default_factory=list)
    ignored_domains: list[str] = Field(default_factory=list)
    property_mappings: list[PropertyMapping] = Field(default_factory=list)
    posthog_url: str = ""
    posthog_api_token: str = ""
    posthog_project_token: str = ""
    http_timeout: float = 30.0

    @property
    def hubspot_auth(self) -> str:
        """Query-string auth appended to every HubSpot URL."""
        return f"hapikey={self.hubspot_api_key}"

    @property
    def sync_scores_enabled(self) -> bool:
        return bool(self.posthog_url and self.posthog_api_token and self.posthog_project_token)

    @classmethod
    def from_settings(cls, settings: Settings) -> BridgeConfig:
        return cls(
            hubspot_api_key=settings.HUBSPOT_API_KEY,
            hubspot_base_url=settings.HUBSPOT_BASE_URL.rstrip("/"),
            triggering_events=split_list(settings.TRIGGERING_EVENTS),
            ignored_domains=[d.lower() for d in split_list(settings.IGNORED_EMAILS)],
            property_mappings=parse_property_mappings(settings.ADDITIONAL_PROPERTY_MAPPINGS),
            posthog_url=settings.POSTHOG_URL.rstrip("/"),
            posthog_api_token=settings.POSTHOG_API_TOKEN,
            posthog_project_token=settings.POSTHOG_PROJECT_TOKEN,
            http_timeout=settings.HTTP_TIMEOUT,
        )

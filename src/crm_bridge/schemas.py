"""Pydantic schemas for the HubSpot <-> PostHog sync bridge.

Defines all structured types that cross a boundary:
- Inbound: InboundEvent (PostHog event as delivered to the event hook)
- Config: PropertyMapping
- HubSpot: CrmContact, ContactPage
- PostHog: PersonRecord, PersonSearchResult
- Sync state: SyncCursor, TickSummary, UpsertOutcome
- Malformed: tagged failure variant returned by the response parsers

External API bodies are loosely shaped JSON. parse_contact_page() and
parse_person_search() validate the fields the sync code relies on and
return either the parsed model or Malformed, never a partially trusted dict.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)

logger = structlog.get_logger(__name__)


# ── Enums ───────────────────────────────────────────────────────────────────


class UpsertOutcome(str, Enum):
    """Result of a single contact upsert attempt."""

    CREATED = "created"
    UPDATED = "updated"
    CONFLICT_UNRESOLVED = "conflict_unresolved"
    UPDATE_FAILED = "update_failed"
    FAILED = "failed"


# ── Inbound ─────────────────────────────────────────────────────────────────


class InboundEvent(BaseModel):
    """A PostHog event delivered to the event hook.

    Accepts the wire names (``event``, ``$set``, ``properties``) as well as
    the Python field names.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="event")
    distinct_id: str = ""
    set_properties: dict[str, Any] = Field(default_factory=dict, alias="$set")
    event_properties: dict[str, Any] = Field(default_factory=dict, alias="properties")
    sent_at: datetime | None = None
    timestamp: datetime | None = None

    @field_validator("distinct_id", mode="before")
    @classmethod
    def _coerce_distinct_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("set_properties", "event_properties", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("sent_at", "timestamp", mode="wrap")
    @classmethod
    def _lenient_datetime(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> datetime | None:
        # Only timestamp mappings read these; a bad value must not drop the event.
        if value is None or value == "":
            return None
        try:
            return handler(value)
        except ValidationError:
            logger.warning("schemas.unparsable_event_time", field=info.field_name, value=value)
            return None

    def merged_properties(self) -> dict[str, Any]:
        """``$set`` then event properties; event properties win on collision."""
        return {**self.set_properties, **self.event_properties}


# ── Config ──────────────────────────────────────────────────────────────────


class PropertyMapping(BaseModel):
    """User-configured ``source:target`` property pair."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str


# ── HubSpot ─────────────────────────────────────────────────────────────────


class CrmContact(BaseModel):
    """Contact as returned by the HubSpot list endpoint."""

    email: str | None = None
    score: str | None = None
    record_id: str | None = None


class ContactPage(BaseModel):
    """One page of the HubSpot contacts list."""

    contacts: list[CrmContact] = Field(default_factory=list)
    next_link: str | None = None
    status: str | None = None
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status == "error"


# ── PostHog ─────────────────────────────────────────────────────────────────


class PersonRecord(BaseModel):
    id: int | str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("properties", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class PersonSearchResult(BaseModel):
    results: list[PersonRecord] = Field(default_factory=list)


# ── Tagged failure ──────────────────────────────────────────────────────────


class Malformed(BaseModel):
    """An external response that could not be validated."""

    reason: str


# ── Sync state ──────────────────────────────────────────────────────────────


class SyncCursor(BaseModel):
    next_page_token: str | None = None
    last_completed_date: date | None = None


class TickSummary(BaseModel):
    """Outcome counts for one score-sync tick."""

    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    persons_patched: int = 0
    full_sync_completed: bool = False
    skipped_reason: str | None = None


# ── Parsers ─────────────────────────────────────────────────────────────────


def parse_contact_page(body: Any) -> ContactPage | Malformed:
    """Validate a HubSpot ``GET /objects/contacts`` body.

    Individual results without a ``properties`` object are dropped; a body
    that is not an object, or whose ``results`` is not a list, is Malformed.
    """
    if not isinstance(body, dict):
        return Malformed(reason="body is not a JSON object")

    results = body.get("results", [])
    if not isinstance(results, list):
        return Malformed(reason="results is not a list")

    contacts: list[CrmContact] = []
    for item in results:
        props = item.get("properties") if isinstance(item, dict) else None
        if not isinstance(props, dict):
            logger.debug("schemas.contact_dropped", item=item)
            continue
        score = props.get("hubspotscore")
        email = props.get("email")
        contacts.append(
            CrmContact(
                email=email if isinstance(email, str) else None,
                score=None if score is None else str(score),
                record_id=None if item.get("id") is None else str(item["id"]),
            )
        )

    next_link = None
    paging = body.get("paging")
    if isinstance(paging, dict) and isinstance(paging.get("next"), dict):
        link = paging["next"].get("link")
        if isinstance(link, str) and link:
            next_link = link

    status = body.get("status")
    message = body.get("message")
    return ContactPage(
        contacts=contacts,
        next_link=next_link,
        status=status if isinstance(status, str) else None,
        message=message if isinstance(message, str) else None,
    )


def parse_person_search(body: Any) -> PersonSearchResult | Malformed:
    """Validate a PostHog ``GET /api/person/`` body."""
    if not isinstance(body, dict):
        return Malformed(reason="body is not a JSON object")
    try:
        return PersonSearchResult.model_validate({"results": body.get("results") or []})
    except ValidationError as exc:
        return Malformed(reason=str(exc))

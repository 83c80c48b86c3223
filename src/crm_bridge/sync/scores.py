"""Score reconciliation: pull ``hubspotscore`` from HubSpot into PostHog persons.

Each tick processes one page of HubSpot contacts:
1. Resolve the request URL from the cursor, or start a fresh pass unless a
   full pass already completed today (UTC).
2. Fetch the page. A failed fetch is logged and whatever contacts were
   parsed are still processed. A transport failure keeps the stored token
   for a retry on the next tick; a rejected or malformed response drops it,
   so the next tick starts a fresh pass. Neither stamps the day.
3. For each contact, look up PostHog persons by email and patch their
   ``hubspot_score``. Errors are isolated per contact.
4. Advance the cursor to the next page, or stamp today as completed.
5. Capture a summary event (batch vs. full-sync completed) on every tick
   that reached HubSpot.

Ticks must not overlap; HubspotBridge serialises them.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime, timezone
from enum import Enum

import structlog

from src.crm_bridge.clients.hubspot import HubspotClient
from src.crm_bridge.clients.posthog import PosthogClient
from src.crm_bridge.core.http import redact_url, safe_json, status_ok
from src.crm_bridge.core.monitoring import score_sync_contacts_total, score_sync_ticks_total
from src.crm_bridge.errors import AnalyticsError, MalformedResponseError, TransportError
from src.crm_bridge.schemas import ContactPage, Malformed, TickSummary, parse_contact_page
from src.crm_bridge.sync.cursor import SyncCursorStore

logger = structlog.get_logger(__name__)

SCORE_PROPERTY = "hubspot_score"

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


class PageFetch(str, Enum):
    """How the contacts page request of a tick ended."""

    OK = "ok"
    TRANSPORT_FAILED = "transport_failed"
    REJECTED = "rejected"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_score(raw: str | None) -> int | None:
    """Parse the leading base-10 integer of a HubSpot score string.

    ``"42"`` -> 42, ``"42.9"`` -> 42, ``"notanumber"`` -> None.
    """
    if raw is None:
        return None
    match = _LEADING_INT_RE.match(raw)
    if match is None:
        return None
    return int(match.group(1))


class ScoreReconciler:
    """Drives one page of HubSpot contacts per tick into PostHog persons.

    Args:
        hubspot: HubSpot contacts client.
        posthog: PostHog person/capture client.
        cursor: Persisted pagination cursor.
        today: Returns the current UTC date; injectable for tests.
    """

    def __init__(
        self,
        hubspot: HubspotClient,
        posthog: PosthogClient,
        cursor: SyncCursorStore,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._hubspot = hubspot
        self._posthog = posthog
        self._cursor = cursor
        self._today = today

    async def run_tick(self) -> TickSummary:
        stored_token = await self._cursor.get()
        request_url = stored_token
        if request_url is None:
            today = self._today()
            if await self._cursor.last_completed_date() == today:
                logger.info("score_sync.already_synced", day=today.isoformat())
                score_sync_ticks_total.labels(result="already_synced").inc()
                return TickSummary(skipped_reason="already_synced_today")
            request_url = self._hubspot.first_page_url()

        logger.info("score_sync.tick_started")
        await self._posthog.capture("hubspot score sync started")

        page, fetch = await self._fetch_page(request_url)
        summary = await self._process_contacts(page)

        if fetch is PageFetch.OK:
            next_token = self._hubspot.next_page_token(page.next_link)
            if next_token:
                await self._cursor.advance(next_token)
            else:
                await self._cursor.complete_day(self._today())
                summary.full_sync_completed = True
        elif fetch is PageFetch.REJECTED and stored_token is not None:
            # The next tick restarts the pass; the day stays incomplete.
            logger.warning("score_sync.stored_token_dropped", url=redact_url(stored_token))
            await self._cursor.advance(None)

        logger.info(
            "score_sync.tick_complete",
            updated=summary.updated,
            skipped=summary.skipped,
            errors=summary.errored,
            processed=summary.processed,
            persons_patched=summary.persons_patched,
            full_sync_completed=summary.full_sync_completed,
        )

        if fetch is PageFetch.OK:
            result = "full_sync_completed" if summary.full_sync_completed else "batch_completed"
        else:
            result = f"fetch_{fetch.value}"
        score_sync_ticks_total.labels(result=result).inc()

        counts = {
            "num_updated": summary.updated,
            "num_skipped": summary.skipped,
            "num_errors": summary.errored,
            "num_processed": summary.processed,
        }
        if summary.full_sync_completed:
            await self._posthog.capture("hubspot contact sync all contacts completed", counts)
        else:
            await self._posthog.capture("hubspot contact sync batch completed", counts)
        return summary

    async def _fetch_page(self, url: str) -> tuple[ContactPage, PageFetch]:
        """Fetch one contacts page. Only PageFetch.OK lets the cursor move forward."""
        try:
            response = await self._hubspot.list_contacts(url)
        except TransportError as exc:
            logger.error("score_sync.page_transport_failed", error=str(exc))
            return ContactPage(), PageFetch.TRANSPORT_FAILED

        parsed = parse_contact_page(safe_json(response))
        if isinstance(parsed, Malformed):
            logger.error(
                "score_sync.page_malformed",
                status_code=response.status_code,
                reason=parsed.reason,
            )
            return ContactPage(), PageFetch.REJECTED

        if not status_ok(response) or parsed.is_error:
            logger.error(
                "score_sync.page_failed",
                status_code=response.status_code,
                message=parsed.message or "",
            )
            return parsed, PageFetch.REJECTED

        logger.info("score_sync.contacts_loaded", count=len(parsed.contacts))
        return parsed, PageFetch.OK

    async def _process_contacts(self, page: ContactPage) -> TickSummary:
        summary = TickSummary()
        for contact in page.contacts:
            summary.processed += 1
            email = contact.email
            if not email:
                logger.debug("score_sync.contact_without_email", record_id=contact.record_id)
                summary.skipped += 1
                score_sync_contacts_total.labels(outcome="skipped").inc()
                continue

            try:
                patched = await self.update_person_score(email, contact.score)
            except Exception as exc:
                logger.error("score_sync.contact_failed", email=email, error=str(exc))
                summary.errored += 1
                score_sync_contacts_total.labels(outcome="errored").inc()
                continue

            if patched:
                summary.updated += 1
                summary.persons_patched += patched
                score_sync_contacts_total.labels(outcome="updated").inc()
                logger.info("score_sync.person_updated", email=email, score=contact.score)
                await self._posthog.capture(
                    "hubspot score updated",
                    {SCORE_PROPERTY: contact.score},
                    distinct_id=email,
                )
            else:
                summary.skipped += 1
                score_sync_contacts_total.labels(outcome="skipped").inc()
        return summary

    async def update_person_score(self, email: str, raw_score: str | None) -> int:
        """Patch every PostHog person matching ``email`` with the parsed score.

        Existing person properties are spread after the score, so a person
        that already carries ``hubspot_score`` keeps its stored value.

        Returns:
            Number of persons patched; 0 when no person matched.

        Raises:
            AnalyticsError: Lookup failed, or every patch was rejected.
            MalformedResponseError: Lookup body failed validation.
            TransportError: Network failure after the retry.
        """
        result = await self._posthog.find_persons(email)
        if isinstance(result, Malformed):
            raise MalformedResponseError(result.reason)

        score = parse_score(raw_score)
        if score is None and raw_score is not None:
            logger.warning("score_sync.score_not_numeric", email=email, score=raw_score)

        patched = 0
        rejected_status: int | None = None
        for person in result.results:
            if person.id is None:
                continue
            properties = {SCORE_PROPERTY: score, **person.properties}
            response = await self._posthog.patch_person(person.id, properties)
            if status_ok(response):
                patched += 1
            else:
                rejected_status = response.status_code
                logger.warning(
                    "score_sync.patch_rejected",
                    email=email,
                    person_id=person.id,
                    status_code=response.status_code,
                )

        if patched == 0 and rejected_status is not None:
            raise AnalyticsError(rejected_status, "person patch rejected")
        return patched

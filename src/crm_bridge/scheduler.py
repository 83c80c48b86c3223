"""Background scheduler for the score sync tick.

Wraps an APScheduler AsyncIOScheduler with a single interval job calling
HubspotBridge.run_every_minute(). max_instances=1 with coalesce keeps at
most one tick in flight; the cursor store relies on that.

Exports:
    ScoreSyncScheduler: Async scheduler for the periodic score-sync tick.
"""

from __future__ import annotations

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.crm_bridge.bridge import HubspotBridge

logger = structlog.get_logger(__name__)

JOB_ID = "hubspot_score_sync"


class ScoreSyncScheduler:
    """Runs the score-sync tick on a fixed interval.

    Args:
        bridge: The bridge whose run_every_minute() is scheduled.
        interval_seconds: Tick cadence. Default 60s.
    """

    def __init__(self, bridge: HubspotBridge, interval_seconds: int = 60) -> None:
        self._bridge = bridge
        self._interval = interval_seconds
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> bool:
        """Start the scheduler. Returns False if it could not be started."""
        try:
            self._scheduler = AsyncIOScheduler()
            self._scheduler.add_job(
                self._run_tick,
                trigger=IntervalTrigger(seconds=self._interval),
                id=JOB_ID,
                name="HubSpot score sync into PostHog persons",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=self._interval,
            )
            self._scheduler.start()
            self._started = True
            logger.info("score_sync_scheduler.started", interval_seconds=self._interval)
            return True

        except Exception as exc:
            logger.warning("score_sync_scheduler.start_failed", error=str(exc))
            return False

    def stop(self) -> None:
        """Shut down the scheduler."""
        if self._scheduler is not None and self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("score_sync_scheduler.stopped")

    async def _run_tick(self) -> None:
        try:
            summary = await self._bridge.run_every_minute()
        except Exception as exc:
            logger.error("score_sync_scheduler.tick_failed", error=str(exc), exc_info=True)
            return
        logger.debug("score_sync_scheduler.tick_done", **summary.model_dump())

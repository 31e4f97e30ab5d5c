"""
Scheduler for rolling class series generation.

Runs once a day and advances every ACTIVE series so that sessions always
exist at least SERIES_ADVANCE_LEAD_DAYS ahead of today.
"""

import asyncio
import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.cron import CronTrigger  # type: ignore

from core.config import SERIES_ADVANCE_HOUR, SERIES_ADVANCE_LEAD_DAYS
from core.constants import SERIES_ADVANCE_MISFIRE_GRACE_SECONDS
from core.database import get_db_context
from services.class_series_service import ClassSeriesService
from shared_types.scheduling import AdvanceSweepResult
from utils.datetime_utils import SCHOOL_TZ

logger = logging.getLogger(__name__)

# Global singleton instance
_series_advance_scheduler: Optional['SeriesAdvanceScheduler'] = None


class SeriesAdvanceScheduler:
    """
    Scheduler for the daily series advance sweep.

    Database sessions are created fresh for each run to avoid stale session issues.
    """

    def __init__(self, lead_days: int = SERIES_ADVANCE_LEAD_DAYS, hour: int = SERIES_ADVANCE_HOUR):
        self.lead_days = lead_days
        self.hour = hour
        self.scheduler = AsyncIOScheduler(timezone=SCHOOL_TZ)
        self._is_started = False

    @property
    def is_started(self) -> bool:
        return self._is_started

    async def start_scheduler(self) -> None:
        """
        Start the background scheduler.

        This should be called during application startup.
        """
        if self._is_started:
            logger.warning("Series advance scheduler is already started")
            return

        self.scheduler.add_job(  # type: ignore
            self._run_advance,
            CronTrigger(hour=self.hour, minute=0),
            id="class_series_advance",
            name="Class series advance generation",
            replace_existing=True,
            misfire_grace_time=SERIES_ADVANCE_MISFIRE_GRACE_SECONDS,
        )

        self.scheduler.start()
        self._is_started = True
        logger.info(
            f"Series advance scheduler started (daily at {self.hour:02d}:00 school time, "
            f"lead_days={self.lead_days})"
        )

    async def stop_scheduler(self) -> None:
        """
        Stop the background scheduler.

        This should be called during application shutdown.
        """
        if self._is_started:
            self.scheduler.shutdown(wait=True)
            self._is_started = False
            logger.info("Series advance scheduler stopped")

    async def _run_advance(self) -> None:
        """
        Run the advance sweep.

        Offloads the blocking database work to a worker thread so the event
        loop keeps serving requests.
        """
        logger.info("Starting scheduled series advance...")
        await asyncio.to_thread(self.execute_advance)

    def execute_advance(self) -> Optional[AdvanceSweepResult]:
        """
        Execute one sweep synchronously with its own database session.

        Errors are logged, not raised, so the next scheduled run still happens.
        """
        with get_db_context() as db:
            try:
                sweep = ClassSeriesService.advance_active_series(db, self.lead_days)
                logger.info(
                    f"Scheduled series advance completed: {sweep.processed} series, "
                    f"{sweep.created_confirmed + sweep.created_conflicted} sessions created"
                )
                return sweep
            except Exception as e:
                logger.exception(f"Error during scheduled series advance: {e}")
                return None


def get_series_advance_scheduler() -> SeriesAdvanceScheduler:
    """
    Get the global series advance scheduler instance.

    Returns:
        SeriesAdvanceScheduler: The global scheduler instance
    """
    global _series_advance_scheduler
    if _series_advance_scheduler is None:
        _series_advance_scheduler = SeriesAdvanceScheduler()
    return _series_advance_scheduler


async def start_series_advance_scheduler() -> None:
    """Start the global series advance scheduler."""
    scheduler = get_series_advance_scheduler()
    await scheduler.start_scheduler()


async def stop_series_advance_scheduler() -> None:
    """Stop the global series advance scheduler."""
    global _series_advance_scheduler
    if _series_advance_scheduler:
        await _series_advance_scheduler.stop_scheduler()

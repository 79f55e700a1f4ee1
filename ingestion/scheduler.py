import logging
from datetime import date as date_type, datetime, timedelta, timezone
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker
from core.config import settings
from core.database import async_session_maker
from ingestion.runner import ReconciliationRunner
from models.base import IngestMode, Level, SnapshotSource

logger = logging.getLogger(__name__)


class IngestScheduler:
    """
    Periodic campaign index ingestion.

    - day pass: today's UTC date, every DAY_PASS_INTERVAL_HOURS
    - reconciled pass: yesterday's UTC date, daily at RECONCILED_PASS_HOUR_UTC

    Each job runs at most once at a time and missed firings coalesce, so a
    (date, level) target never sees two concurrent runs from this process.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.session_factory = session_factory or async_session_maker
        self.levels = [Level(level) for level in settings.INGEST_LEVELS]

    async def run_pass(self, target_date: date_type, snapshot_source: SnapshotSource):
        """Ingest every configured level for one date; a failed level does not stop the rest."""
        for level in self.levels:
            logger.info(f"Scheduler: {snapshot_source.value} pass for {target_date} ({level.value})")
            async with self.session_factory() as session:
                try:
                    runner = ReconciliationRunner(session)
                    await runner.run(target_date, level, snapshot_source, IngestMode.REMOTE)
                except Exception as e:
                    logger.error(f"Scheduler: {snapshot_source.value} pass failed for {target_date} ({level.value}) - {e}")

    async def run_day_pass(self):
        await self.run_pass(datetime.now(timezone.utc).date(), SnapshotSource.DAY)

    async def run_reconciled_pass(self):
        yesterday = datetime.now(timezone.utc).date() - timedelta(days=1)
        await self.run_pass(yesterday, SnapshotSource.RECONCILED)

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_day_pass,
            trigger=IntervalTrigger(hours=settings.DAY_PASS_INTERVAL_HOURS),
            id="campaign_index_day",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.run_reconciled_pass,
            trigger=CronTrigger(hour=settings.RECONCILED_PASS_HOUR_UTC, minute=0, timezone=timezone.utc),
            id="campaign_index_reconciled",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Ingest scheduler started")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Ingest scheduler stopped")

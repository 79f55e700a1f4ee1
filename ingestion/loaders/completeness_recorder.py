"""
Per-(date, endpoint) completeness records and the trailing row-count baseline
"""

from datetime import date as date_type, datetime, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, func, select
from core.config import settings
from ingestion.transformers.lookups import platform_for_endpoint
from models.base import EndpointStatus, utcnow
from models.completeness import EndpointCompleteness
from schemas.records import EndpointResult
import logging

logger = logging.getLogger(__name__)


class CompletenessRecorder:
    """
    Persist the outcome of every attempted source fetch.

    The baseline for an endpoint is the floored average row count of its
    OK, non-empty fetches over the ``BASELINE_LOOKBACK_DAYS`` days before the
    target date. Only earlier dates are consulted.
    """

    def __init__(self, db_session: AsyncSession, lookback_days: Optional[int] = None):
        self.db = db_session
        self.lookback_days = lookback_days or settings.BASELINE_LOOKBACK_DAYS

    async def expected_min_rows(self, endpoint: str, date: date_type) -> Optional[int]:
        """Trailing baseline for ``endpoint``, or None without history."""
        window_start = date - timedelta(days=self.lookback_days)
        result = await self.db.execute(
            select(func.avg(EndpointCompleteness.row_count)).where(
                EndpointCompleteness.endpoint == endpoint,
                EndpointCompleteness.status == EndpointStatus.OK,
                EndpointCompleteness.row_count > 0,
                EndpointCompleteness.date >= window_start,
                EndpointCompleteness.date < date,
            )
        )
        average = result.scalar()
        if average is None:
            return None
        return int(float(average))

    async def record(
        self,
        date: date_type,
        result: EndpointResult,
        status: EndpointStatus,
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
    ) -> EndpointCompleteness:
        """Supersede the (date, endpoint) row with this outcome and commit."""
        await self.db.execute(
            delete(EndpointCompleteness).where(
                EndpointCompleteness.date == date,
                EndpointCompleteness.endpoint == result.endpoint,
            )
        )

        row = EndpointCompleteness(
            date=date,
            endpoint=result.endpoint,
            platform=platform_for_endpoint(result.endpoint),
            status=status,
            row_count=result.row_count,
            expected_min_rows=result.expected_min_rows,
            has_revenue=result.has_revenue,
            has_spend=result.has_spend,
            error_message=result.error,
            http_status=result.http_status,
            retry_count=result.retry_count,
            started_at=started_at or utcnow(),
            finished_at=finished_at or utcnow(),
        )
        self.db.add(row)
        await self.db.commit()

        logger.debug(f"Recorded completeness for {result.endpoint} on {date}: {status.value}")
        return row

"""
Append-only audit trail of ingestion attempts
"""

from datetime import date as date_type, datetime
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from models.base import IngestMode, Level, RunStatus, SnapshotSource, utcnow
from models.ingestion_run import IngestionRun
import logging

logger = logging.getLogger(__name__)


class RunLedger:
    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def record(
        self,
        date: date_type,
        snapshot_source: SnapshotSource,
        level: Level,
        mode: IngestMode,
        status: RunStatus,
        row_count: int = 0,
        message: Optional[str] = None,
        started_at: Optional[datetime] = None,
        source_states: Optional[Dict[str, Any]] = None,
    ) -> IngestionRun:
        """Append one ledger row and commit it."""
        finished_at = utcnow()
        started_at = started_at or finished_at

        run = IngestionRun(
            date=date,
            snapshot_source=snapshot_source,
            level=level,
            mode=mode,
            row_count=row_count,
            status=status,
            message=message,
            started_at=started_at,
            finished_at=finished_at,
            duration_seconds=(finished_at - started_at).total_seconds(),
            source_states=source_states,
        )
        self.db.add(run)
        await self.db.commit()

        logger.info(
            f"Ledger: {date} {snapshot_source.value}/{level.value} ({mode.value}) "
            f"-> {status.value}, {row_count} rows"
        )
        return run

"""
Write reconciled fact records into campaign_index (idempotent)
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete
from models.campaign_index import CampaignIndexRecord
from models.base import utcnow
from schemas.records import CampaignRecordCreate
from core.exceptions import WriteFailure
import logging

logger = logging.getLogger(__name__)


class CampaignIndexLoader:
    """
    Replace fact rows scope by scope.

    Ensures:
    - At most one live row per (campaign_id, level, date, snapshot_source)
    - Re-running a scope replaces its row instead of duplicating it
    - One transaction per batch: any failure rolls the whole batch back
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def load(self, records: List[CampaignRecordCreate]) -> int:
        """
        Delete-then-insert every record's scope and commit once.

        Returns:
            Number of records written

        Raises:
            WriteFailure: The batch could not be written; nothing was committed
        """
        if not records:
            return 0

        # Later rows for a scope replace earlier ones, as a per-row DELETE+INSERT would
        latest = {}
        for record in records:
            latest[record.scope()] = record
        if len(latest) < len(records):
            logger.warning(f"Collapsed {len(records) - len(latest)} records sharing a scope with a later record")

        written = 0
        try:
            for record in latest.values():
                await self.db.execute(
                    delete(CampaignIndexRecord).where(
                        CampaignIndexRecord.campaign_id == record.campaign_id,
                        CampaignIndexRecord.level == record.level,
                        CampaignIndexRecord.date == record.date,
                        CampaignIndexRecord.snapshot_source == record.snapshot_source,
                    )
                )
                self.db.add(CampaignIndexRecord(**record.model_dump(), updated_at=utcnow()))
                written += 1

            await self.db.commit()

        except Exception as e:
            await self.db.rollback()
            raise WriteFailure(
                "Failed to write campaign index records",
                context={
                    "records_to_load": len(latest),
                    "records_staged": written,
                    "operation": "DELETE+INSERT",
                    "table_name": "campaign_index",
                },
                original_exception=e,
            )

        logger.info(f"Upserted {written} rows into campaign_index")
        return written

"""
Normalize captured snapshot rows directly into fact records.

Snapshot mode bypasses the aggregator: each flat-file row already describes
one campaign for the requested (date, level), so it maps 1:1 onto a record.
"""

from datetime import date as date_type
from typing import Any, Dict, Iterable, List, Optional
import logging

from pydantic import ValidationError

from ingestion.transformers.fields import (
    ACCOUNT_ID_KEYS,
    CATEGORY_KEYS,
    LANE_KEYS,
    ROAS_KEYS,
    SNAPSHOT_ADSET_ID_KEYS,
    SNAPSHOT_ADSET_NAME_KEYS,
    SNAPSHOT_CAMPAIGN_ID_KEYS,
    SNAPSHOT_CAMPAIGN_NAME_KEYS,
    SNAPSHOT_CLICK_KEYS,
    SNAPSHOT_CONVERSION_KEYS,
    SNAPSHOT_MEDIA_SOURCE_KEYS,
    SNAPSHOT_OWNER_KEYS,
    SNAPSHOT_REVENUE_KEYS,
    SNAPSHOT_S1_ACCOUNT_KEYS,
    SNAPSHOT_SESSION_KEYS,
    SNAPSHOT_SITE_KEYS,
    SNAPSHOT_SPEND_KEYS,
    pick,
    pick_id,
    pick_number,
)
from ingestion.transformers.lookups import account_for_site
from models.base import Level, SnapshotSource
from schemas.records import CampaignRecordCreate

logger = logging.getLogger(__name__)


class SnapshotNormalizer:
    """
    Map snapshot rows onto ``CampaignRecordCreate``.

    Handles:
    - Column-name variants between snapshot generations
    - Numeric coercion (blank and non-finite cells become None)
    - Rows without a campaign id (skipped and counted)
    """

    def __init__(self, date: date_type, level: Level, snapshot_source: SnapshotSource):
        self.date = date
        self.level = level
        self.snapshot_source = snapshot_source
        self.skipped = 0

    def normalize(self, row: Dict[str, Any]) -> Optional[CampaignRecordCreate]:
        """Returns None when the row carries no campaign id."""
        campaign_id = pick_id(row, SNAPSHOT_CAMPAIGN_ID_KEYS)
        if not campaign_id:
            return None

        site = pick(row, SNAPSHOT_SITE_KEYS)
        return CampaignRecordCreate(
            campaign_id=campaign_id,
            level=self.level,
            date=self.date,
            snapshot_source=self.snapshot_source,
            account_id=pick_id(row, ACCOUNT_ID_KEYS),
            campaign_name=pick(row, SNAPSHOT_CAMPAIGN_NAME_KEYS),
            adset_id=pick_id(row, SNAPSHOT_ADSET_ID_KEYS),
            adset_name=pick(row, SNAPSHOT_ADSET_NAME_KEYS),
            owner=pick(row, SNAPSHOT_OWNER_KEYS),
            lane=pick(row, LANE_KEYS),
            category=pick(row, CATEGORY_KEYS),
            media_source=pick(row, SNAPSHOT_MEDIA_SOURCE_KEYS),
            rsoc_site=site,
            s1_google_account=pick(row, SNAPSHOT_S1_ACCOUNT_KEYS) or account_for_site(site),
            spend_usd=pick_number(row, SNAPSHOT_SPEND_KEYS),
            revenue_usd=pick_number(row, SNAPSHOT_REVENUE_KEYS),
            sessions=pick_number(row, SNAPSHOT_SESSION_KEYS),
            clicks=pick_number(row, SNAPSHOT_CLICK_KEYS),
            conversions=pick_number(row, SNAPSHOT_CONVERSION_KEYS),
            roas=pick_number(row, ROAS_KEYS),
            raw_payload=dict(row),
        )

    def normalize_many(self, rows: Iterable[Dict[str, Any]]) -> List[CampaignRecordCreate]:
        records = []
        for row in rows:
            try:
                record = self.normalize(row)
            except ValidationError as e:
                logger.warning(f"Skipping invalid snapshot row: {e.errors()[0].get('msg')}")
                record = None
            if record is None:
                self.skipped += 1
                continue
            records.append(record)

        if self.skipped:
            logger.info(f"Skipped {self.skipped} snapshot rows without a usable campaign id")
        return records

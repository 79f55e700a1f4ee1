"""
Snapshot file extractor: bulk rows from a previously captured flat file
"""

import pandas as pd
from datetime import date as date_type
from typing import List, Dict, Any, Optional
from pathlib import Path
from core.config import settings
from core.exceptions import SnapshotNotFoundError
from models.base import Level, SnapshotSource
import logging

logger = logging.getLogger(__name__)

MAX_ROW_LIMIT = 200000


class SnapshotExtractor:
    """
    Read captured day/reconciled snapshots.

    Layout under each root:
        <snapshot_ts>/manifest.csv
        <snapshot_ts>/level=<level>/date=<YYYY-MM-DD>/*.csv

    The newest snapshot whose manifest lists the requested date wins.
    """

    def __init__(self, day_base: Optional[str] = None, reconciled_base: Optional[str] = None):
        self.day_base = Path(day_base or settings.DAY_SNAPSHOTS_BASE)
        self.reconciled_base = Path(reconciled_base or settings.RECONCILED_SNAPSHOTS_BASE)

    def base_for(self, source: SnapshotSource) -> Path:
        return self.reconciled_base if source == SnapshotSource.RECONCILED else self.day_base

    def find_snapshot(self, base_dir: Path, date: date_type) -> Optional[Path]:
        """Newest snapshot directory whose manifest lists ``date``."""
        if not base_dir.exists():
            return None
        wanted = date.isoformat()
        for snapshot_dir in sorted((p for p in base_dir.iterdir() if p.is_dir()), reverse=True):
            manifest = snapshot_dir / "manifest.csv"
            if not manifest.exists():
                continue
            df = pd.read_csv(manifest, dtype=str)
            if "date" in df.columns and wanted in set(df["date"].str.strip()):
                return snapshot_dir
        return None

    async def fetch_rows(
        self,
        date: date_type,
        source: SnapshotSource = SnapshotSource.DAY,
        level: Level = Level.CAMPAIGN,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Load at most ``limit`` rows for one (date, level) partition.

        Raises:
            SnapshotNotFoundError: No snapshot, partition or data file covers the date
        """
        limit = max(1, min(limit or settings.SNAPSHOT_ROW_LIMIT, MAX_ROW_LIMIT))
        base_dir = self.base_for(source)
        context = {"base_dir": str(base_dir), "date": date.isoformat(), "level": level.value}

        snapshot_dir = self.find_snapshot(base_dir, date)
        if snapshot_dir is None:
            raise SnapshotNotFoundError(f"No {source.value} snapshot found containing date {date}", context=context)

        date_dir = snapshot_dir / f"level={level.value}" / f"date={date.isoformat()}"
        if not date_dir.exists():
            raise SnapshotNotFoundError(f"Snapshot directory missing: {date_dir}", context=context)

        files = sorted(date_dir.glob("*.csv"))
        if not files:
            raise SnapshotNotFoundError(f"No data files found under {date_dir}", context=context)

        logger.info(f"Reading {len(files)} snapshot file(s) from {date_dir}")

        frames = [pd.read_csv(path, dtype={"campaign_id": str, "adset_id": str, "account_id": str}) for path in files]
        df = pd.concat(frames, ignore_index=True).head(limit)
        # NaN -> None so downstream extraction sees missing values as absent
        df = df.astype(object).where(pd.notna(df), None)

        records = df.to_dict(orient="records")
        logger.info(f"Read {len(records)} records from {snapshot_dir.name}")
        return records

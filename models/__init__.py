"""
SQLAlchemy ORM models for the metrics store.

Models:
    base: Declarative base, portable column types and shared enums
          (Level, SnapshotSource, IngestMode, EndpointStatus, SourceState, RunStatus)
    campaign_index: Reconciled per-(campaign, day) fact records
    completeness: Per-(date, endpoint) fetch outcome and quality flags
    ingestion_run: Append-only run ledger

Database Schema:
    All models inherit from the Base declarative class. JSON payloads are
    JSONB on PostgreSQL and plain JSON elsewhere.

Usage:
    from models import CampaignIndexRecord, EndpointCompleteness, IngestionRun
    from models.base import Level, SnapshotSource

Relationships:
    - EndpointCompleteness rows from earlier dates feed the row-count
      baseline used while ingesting a later date (lookback only)
    - IngestionRun rows are independent audit entries; no foreign keys, so a
      killed run never leaves dangling references
"""

from models.base import Base
from models.campaign_index import CampaignIndexRecord
from models.completeness import EndpointCompleteness
from models.ingestion_run import IngestionRun

__all__ = [
    "Base",
    "CampaignIndexRecord",
    "EndpointCompleteness",
    "IngestionRun",
]

from sqlalchemy import Column, String, Enum, Date, DateTime, Float, Index
from models.base import Base, JSONPayload, PrimaryKey, Level, SnapshotSource, utcnow


class CampaignIndexRecord(Base):
    """
    One reconciled per-(campaign, day) fact row.

    Scope:
    - At most one live row per (campaign_id, level, date, snapshot_source)
    - Enforced by delete-then-insert in the writer, not by a unique constraint

    Design:
    - Canonical, queryable columns for taxonomy and metrics
    - raw_payload keeps both identifiers and the per-source breakdown so new
      sources need no migration
    """
    __tablename__ = "campaign_index"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)

    # Scope
    campaign_id = Column(String(255), nullable=False)
    level = Column(Enum(Level), nullable=False)
    date = Column(Date, nullable=False)
    snapshot_source = Column(Enum(SnapshotSource), nullable=False)

    # Identifying attributes
    account_id = Column(String(255), nullable=True)
    campaign_name = Column(String(500), nullable=True)
    adset_id = Column(String(255), nullable=True)
    adset_name = Column(String(500), nullable=True)
    owner = Column(String(100), nullable=True, index=True)
    lane = Column(String(100), nullable=True)
    category = Column(String(200), nullable=True, index=True)
    media_source = Column(String(100), nullable=True, index=True)
    rsoc_site = Column(String(255), nullable=True)
    s1_google_account = Column(String(255), nullable=True)

    # Metrics (null when never observed or summed to zero)
    spend_usd = Column(Float, nullable=True)
    revenue_usd = Column(Float, nullable=True)
    sessions = Column(Float, nullable=True)
    clicks = Column(Float, nullable=True)
    conversions = Column(Float, nullable=True)
    roas = Column(Float, nullable=True)

    raw_payload = Column(JSONPayload, nullable=True)

    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_campaign_index_scope", "campaign_id", "level", "date", "snapshot_source"),
        Index("idx_campaign_index_date_level", "date", "level", "snapshot_source"),
    )

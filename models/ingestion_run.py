from sqlalchemy import Column, Integer, Enum, Date, DateTime, Float, Text, Index
from sqlalchemy import Uuid
import uuid
from models.base import Base, JSONPayload, PrimaryKey, Level, SnapshotSource, IngestMode, RunStatus, utcnow


class IngestionRun(Base):
    """
    Append-only audit row per ingestion attempt.

    Purpose:
    - Audit trail of every (date, snapshot_source, level) attempt
    - Always written last, whether the run succeeded or failed
    - source_states records where each source ended up
    """
    __tablename__ = "campaign_index_runs"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    run_id = Column(Uuid, default=uuid.uuid4, unique=True, nullable=False, index=True)

    date = Column(Date, nullable=False)
    snapshot_source = Column(Enum(SnapshotSource), nullable=False)
    level = Column(Enum(Level), nullable=False)
    mode = Column(Enum(IngestMode), nullable=False, default=IngestMode.REMOTE)

    row_count = Column(Integer, nullable=False, default=0)
    status = Column(Enum(RunStatus), nullable=False, index=True)
    message = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Float, nullable=True)

    source_states = Column(JSONPayload, nullable=True)

    __table_args__ = (
        Index("idx_runs_date_source_level", "date", "snapshot_source", "level", "started_at"),
    )

from sqlalchemy import Column, Integer, String, Enum, Date, DateTime, Boolean, Text, Index
from models.base import Base, PrimaryKey, EndpointStatus, utcnow


class EndpointCompleteness(Base):
    """
    Fetch outcome and data-quality flags per (date, endpoint).

    Purpose:
    - Diagnose degraded ingestion without scraping logs
    - Feed the trailing row-count baseline used by later runs

    Design:
    - One row per (date, endpoint); re-ingesting a date deletes and
      re-inserts it
    - expected_min_rows is the baseline that was in force for this fetch
    """
    __tablename__ = "endpoint_completeness"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)

    date = Column(Date, nullable=False)
    endpoint = Column(String(100), nullable=False)
    platform = Column(String(50), nullable=True)

    status = Column(Enum(EndpointStatus), nullable=False)
    row_count = Column(Integer, nullable=False, default=0)
    expected_min_rows = Column(Integer, nullable=True)
    has_revenue = Column(Boolean, nullable=True)
    has_spend = Column(Boolean, nullable=True)
    error_message = Column(Text, nullable=True)
    http_status = Column(Integer, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_completeness_date_endpoint", "date", "endpoint", unique=True),
        Index("idx_completeness_endpoint_status", "endpoint", "status", "date"),
    )

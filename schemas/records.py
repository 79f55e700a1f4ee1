"""
Pydantic schemas for reconciled fact records and guarded fetch results
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import date as date_type
from models.base import Level, SnapshotSource


class CampaignRecordCreate(BaseModel):
    """
    Immutable snapshot of one campaign aggregate at write time.

    Ensures:
    - The scope (campaign_id, level, date, snapshot_source) is complete
    - Identifying strings are stripped, blanks become None
    - Numeric metrics are plain floats or None
    """

    # Scope (required)
    campaign_id: str = Field(..., min_length=1, max_length=255)
    level: Level
    date: date_type
    snapshot_source: SnapshotSource

    # Identifying attributes
    account_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    owner: Optional[str] = None
    lane: Optional[str] = None
    category: Optional[str] = None
    media_source: Optional[str] = None
    rsoc_site: Optional[str] = None
    s1_google_account: Optional[str] = None

    # Metrics
    spend_usd: Optional[float] = None
    revenue_usd: Optional[float] = None
    sessions: Optional[float] = None
    clicks: Optional[float] = None
    conversions: Optional[float] = None
    roas: Optional[float] = None

    # Opaque provenance payload
    raw_payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "account_id", "campaign_name", "adset_id", "adset_name", "owner",
        "lane", "category", "media_source", "rsoc_site", "s1_google_account",
        mode="before",
    )
    @classmethod
    def clean_identifier(cls, v):
        """Coerce ids to strings and drop blanks"""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("campaign_id", mode="before")
    @classmethod
    def clean_campaign_id(cls, v):
        if v is None:
            return v
        return str(v).strip()

    class Config:
        frozen = True

    def scope(self) -> tuple:
        """Key of the single live row this record replaces."""
        return (self.campaign_id, self.level, self.date, self.snapshot_source)


class EndpointResult(BaseModel):
    """
    Structured outcome of one guarded source fetch.

    Produced by the retry/quality guard; consumed by the orchestrator and
    the completeness recorder.
    """

    endpoint: str
    success: bool
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    has_revenue: bool = False
    has_spend: bool = False
    error: Optional[str] = None
    http_status: Optional[int] = None
    retry_count: int = 0
    expected_min_rows: Optional[int] = None
    warnings: List[str] = Field(default_factory=list)

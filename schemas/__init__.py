"""
Pydantic schemas for data validation and serialization.

Schemas:
    records: Reconciled fact records (CampaignRecordCreate) and guarded
             fetch outcomes (EndpointResult)

Usage:
    from schemas.records import CampaignRecordCreate, EndpointResult

Example:
    record = CampaignRecordCreate(
        campaign_id="abc123",
        level=Level.CAMPAIGN,
        date=date(2025, 1, 10),
        snapshot_source=SnapshotSource.DAY,
        revenue_usd=120.5,
    )

    # Records are frozen once built
    assert record.scope() == ("abc123", Level.CAMPAIGN, date(2025, 1, 10), SnapshotSource.DAY)
"""

__all__ = [
    "CampaignRecordCreate",
    "EndpointResult",
]

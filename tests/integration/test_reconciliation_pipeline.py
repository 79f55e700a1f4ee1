"""
End-to-end reconciliation runs against a real (SQLite) metrics store
"""

import pytest
from datetime import date, timedelta
from sqlalchemy import func, select
from ingestion.extractors.snapshot_extractor import SnapshotExtractor
from ingestion.runner import ReconciliationRunner
from models.base import EndpointStatus, IngestMode, Level, RunStatus, SnapshotSource
from models.campaign_index import CampaignIndexRecord
from models.completeness import EndpointCompleteness
from models.ingestion_run import IngestionRun

RUN_DATE = date(2025, 1, 10)


async def fact_rows(db_session):
    result = await db_session.execute(select(CampaignIndexRecord).order_by(CampaignIndexRecord.campaign_id))
    return result.scalars().all()


async def completeness_for(db_session, endpoint, on=RUN_DATE):
    result = await db_session.execute(
        select(EndpointCompleteness).where(
            EndpointCompleteness.endpoint == endpoint,
            EndpointCompleteness.date == on,
        )
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_revenue_and_spend_reconcile_into_one_record(db_session, fake_api):
    api = fake_api({
        "s1_daily_v3": [{"id": "abc123", "revenue": "120.50", "sessions": "40"}],
        "taboola_report": [{"id": "abc123", "spend": "30.00"}],
    })

    summary = await ReconciliationRunner(db_session, api=api).run(RUN_DATE, Level.CAMPAIGN)

    assert summary["status"] == "success"
    assert summary["records_written"] == 1

    rows = await fact_rows(db_session)
    assert len(rows) == 1
    record = rows[0]
    assert record.campaign_id == "abc123"
    assert record.revenue_usd == pytest.approx(120.50)
    assert record.spend_usd == pytest.approx(30.00)
    assert record.sessions == pytest.approx(40)
    assert record.roas == pytest.approx(4.0167, rel=1e-4)
    assert record.raw_payload["source_metrics"]["taboola_report"]["spend_usd"] == pytest.approx(30.0)


@pytest.mark.asyncio
async def test_sources_are_merged_in_priority_order(db_session, s1_rows, facebook_report_rows, fake_api):
    api = fake_api({
        "s1_daily_v3": s1_rows,
        "facebook_report": facebook_report_rows,
        "facebook_campaigns": [{"strategisCampaignId": "sc-001", "lane": "scale", "owner": "carol"}],
    })

    summary = await ReconciliationRunner(db_session, api=api).run(RUN_DATE)

    records = {r.campaign_id: r for r in await fact_rows(db_session)}
    assert set(records) == {"sc-001", "sc-002"}

    first = records["sc-001"]
    # S1 taxonomy wins over later Facebook values
    assert first.owner == "alice"
    assert first.lane == "prospecting"
    assert first.category == "health"
    # Gaps are backfilled from later sources
    assert first.campaign_name == "Health | Broad | US"
    assert first.account_id == "act_9001"
    assert first.media_source == "facebook"
    assert first.s1_google_account == "S1 Google - WSI"
    assert first.clicks == pytest.approx(20)
    assert first.roas == pytest.approx(120.50 / 30.0)

    assert list(summary["source_states"])[:3] == ["s1_daily_v3", "facebook_campaigns", "facebook_report"]
    assert set(summary["source_states"].values()) == {"ok"}


@pytest.mark.asyncio
async def test_rerun_replaces_instead_of_duplicating(db_session, fake_api):
    first = fake_api({"s1_daily_v3": [{"id": "k1", "revenue": 10}, {"id": "k2", "revenue": 5}]})
    second = fake_api({"s1_daily_v3": [{"id": "k1", "revenue": 12}, {"id": "k2", "revenue": 6}]})

    await ReconciliationRunner(db_session, api=first).run(RUN_DATE)
    await ReconciliationRunner(db_session, api=second).run(RUN_DATE)

    records = {r.campaign_id: r for r in await fact_rows(db_session)}
    assert len(records) == 2
    assert records["k1"].revenue_usd == pytest.approx(12)
    assert records["k2"].revenue_usd == pytest.approx(6)

    completeness_count = await db_session.execute(
        select(func.count()).select_from(EndpointCompleteness).where(EndpointCompleteness.endpoint == "s1_daily_v3")
    )
    assert completeness_count.scalar() == 1

    runs = await db_session.execute(select(func.count()).select_from(IngestionRun))
    assert runs.scalar() == 2


@pytest.mark.asyncio
async def test_snapshot_sources_are_kept_apart(db_session, fake_api):
    api = fake_api({"s1_daily_v3": [{"id": "k1", "revenue": 10}]})

    await ReconciliationRunner(db_session, api=api).run(RUN_DATE, snapshot_source=SnapshotSource.DAY)
    await ReconciliationRunner(db_session, api=api).run(RUN_DATE, snapshot_source=SnapshotSource.RECONCILED)

    sources = sorted(r.snapshot_source.value for r in await fact_rows(db_session))
    assert sources == ["day", "reconciled"]


@pytest.mark.asyncio
async def test_baseline_flags_low_row_count_without_failing(db_session, fake_api):
    for offset, count in enumerate([100, 110, 90, 105, 95, 100, 108], start=1):
        db_session.add(EndpointCompleteness(
            date=RUN_DATE - timedelta(days=offset),
            endpoint="s1_daily_v3",
            status=EndpointStatus.OK,
            row_count=count,
        ))
    # Outside the lookback window and a failed run: both ignored
    db_session.add(EndpointCompleteness(
        date=RUN_DATE - timedelta(days=8), endpoint="s1_daily_v3", status=EndpointStatus.OK, row_count=5000,
    ))
    db_session.add(EndpointCompleteness(
        date=RUN_DATE - timedelta(days=1), endpoint="taboola_report", status=EndpointStatus.FAILED, row_count=0,
    ))
    await db_session.commit()

    api = fake_api({"s1_daily_v3": [{"id": f"c{i}", "revenue": 1} for i in range(40)]})
    summary = await ReconciliationRunner(db_session, api=api).run(RUN_DATE)

    assert summary["status"] == "success"
    assert summary["records_written"] == 40
    assert summary["source_states"]["s1_daily_v3"] == "partial"
    assert any("<50%" in w for w in summary["warnings"])

    s1 = await completeness_for(db_session, "s1_daily_v3")
    assert s1.expected_min_rows == 101
    assert s1.status == EndpointStatus.PARTIAL
    assert s1.row_count == 40
    assert s1.has_revenue is True

    taboola = await completeness_for(db_session, "taboola_report")
    assert taboola.expected_min_rows is None


@pytest.mark.asyncio
async def test_snapshot_mode_bypasses_aggregation(db_session, tmp_path):
    snapshot_dir = tmp_path / "day" / "2025-01-11T06-00-00Z"
    partition = snapshot_dir / "level=campaign" / "date=2025-01-10"
    partition.mkdir(parents=True)
    (snapshot_dir / "manifest.csv").write_text("date\n2025-01-10\n")
    (partition / "part-0.csv").write_text(
        "campaign_id,campaign_name,spend_usd,revenue_usd,roas\n"
        "s-1,One,10,30,3\n"
        "s-2,Two,5,,\n"
        ",Orphan,1,1,1\n"
    )
    runner = ReconciliationRunner(
        db_session,
        snapshot_extractor=SnapshotExtractor(day_base=str(tmp_path / "day")),
    )
    summary = await runner.run(RUN_DATE, mode=IngestMode.SNAPSHOT)

    assert summary["status"] == "success"
    assert summary["records_written"] == 2
    records = {r.campaign_id: r for r in await fact_rows(db_session)}
    assert records["s-1"].roas == pytest.approx(3)
    assert records["s-2"].revenue_usd is None

    run = (await db_session.execute(select(IngestionRun))).scalar_one()
    assert run.mode == IngestMode.SNAPSHOT
    assert run.status == RunStatus.SUCCESS
    assert run.row_count == 2


@pytest.mark.asyncio
async def test_snapshot_rows_sharing_a_scope_leave_one_live_row(db_session, tmp_path):
    snapshot_dir = tmp_path / "day" / "2025-01-11T06-00-00Z"
    partition = snapshot_dir / "level=adset" / "date=2025-01-10"
    partition.mkdir(parents=True)
    (snapshot_dir / "manifest.csv").write_text("date\n2025-01-10\n")
    (partition / "part-0.csv").write_text(
        "campaign_id,adset_id,spend_usd\n"
        "c-1,a-1,10\n"
        "c-1,a-2,5\n"
    )
    runner = ReconciliationRunner(
        db_session,
        snapshot_extractor=SnapshotExtractor(day_base=str(tmp_path / "day")),
    )
    summary = await runner.run(RUN_DATE, level=Level.ADSET, mode=IngestMode.SNAPSHOT)

    assert summary["records_written"] == 1
    rows = await fact_rows(db_session)
    assert len(rows) == 1
    assert rows[0].adset_id == "a-2"
    assert rows[0].spend_usd == pytest.approx(5)

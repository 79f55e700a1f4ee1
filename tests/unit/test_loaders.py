"""
Unit tests for fact writer, completeness recorder and run ledger
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock, Mock
from core.exceptions import WriteFailure
from ingestion.loaders.campaign_index_loader import CampaignIndexLoader
from ingestion.loaders.completeness_recorder import CompletenessRecorder
from ingestion.loaders.run_ledger import RunLedger
from models.base import EndpointStatus, IngestMode, Level, RunStatus, SnapshotSource
from models.campaign_index import CampaignIndexRecord
from models.completeness import EndpointCompleteness
from schemas.records import CampaignRecordCreate, EndpointResult

RUN_DATE = date(2025, 1, 10)


def mock_session():
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = Mock()
    return session


def make_record(campaign_id, **kwargs):
    return CampaignRecordCreate(
        campaign_id=campaign_id,
        level=Level.CAMPAIGN,
        date=RUN_DATE,
        snapshot_source=SnapshotSource.DAY,
        **kwargs
    )


class TestCampaignIndexLoader:
    @pytest.mark.asyncio
    async def test_load_deletes_scope_then_inserts(self):
        session = mock_session()
        loader = CampaignIndexLoader(session)

        result = await loader.load([make_record("a", spend_usd=1.0), make_record("b", revenue_usd=2.0)])

        assert result == 2
        assert session.execute.await_count == 2
        assert session.add.call_count == 2
        added = session.add.call_args_list[0].args[0]
        assert isinstance(added, CampaignIndexRecord)
        assert added.campaign_id == "a"
        assert added.spend_usd == 1.0
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_repeated_scope_keeps_last_record(self):
        session = mock_session()
        loader = CampaignIndexLoader(session)

        result = await loader.load([
            make_record("a", spend_usd=10.0),
            make_record("b", spend_usd=1.0),
            make_record("a", spend_usd=5.0),
        ])

        assert result == 2
        assert session.execute.await_count == 2
        added = {call.args[0].campaign_id: call.args[0] for call in session.add.call_args_list}
        assert set(added) == {"a", "b"}
        assert added["a"].spend_usd == 5.0
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_load_empty_list(self):
        session = mock_session()
        assert await CampaignIndexLoader(session).load([]) == 0
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_rolls_back_whole_batch(self):
        session = mock_session()
        session.execute = AsyncMock(side_effect=[None, RuntimeError("connection lost")])
        loader = CampaignIndexLoader(session)

        with pytest.raises(WriteFailure) as exc_info:
            await loader.load([make_record("a"), make_record("b")])

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()
        assert exc_info.value.context["records_to_load"] == 2
        assert isinstance(exc_info.value.original_exception, RuntimeError)


class TestCompletenessRecorder:
    @pytest.mark.asyncio
    async def test_baseline_is_floored_average(self):
        session = mock_session()
        result = Mock()
        result.scalar.return_value = 101.142857
        session.execute = AsyncMock(return_value=result)

        baseline = await CompletenessRecorder(session).expected_min_rows("s1_daily_v3", RUN_DATE)

        assert baseline == 101

    @pytest.mark.asyncio
    async def test_no_history_means_no_baseline(self):
        session = mock_session()
        result = Mock()
        result.scalar.return_value = None
        session.execute = AsyncMock(return_value=result)

        assert await CompletenessRecorder(session).expected_min_rows("s1_daily_v3", RUN_DATE) is None

    @pytest.mark.asyncio
    async def test_record_supersedes_previous_row(self):
        session = mock_session()
        recorder = CompletenessRecorder(session)
        result = EndpointResult(
            endpoint="taboola_report",
            success=False,
            error="HTTP 503",
            http_status=503,
            retry_count=1,
        )

        row = await recorder.record(RUN_DATE, result, EndpointStatus.FAILED)

        session.execute.assert_awaited_once()
        session.add.assert_called_once_with(row)
        session.commit.assert_awaited_once()
        assert isinstance(row, EndpointCompleteness)
        assert row.platform == "taboola"
        assert row.status == EndpointStatus.FAILED
        assert row.http_status == 503
        assert row.retry_count == 1
        assert row.error_message == "HTTP 503"


class TestRunLedger:
    @pytest.mark.asyncio
    async def test_record_appends_row(self):
        session = mock_session()

        run = await RunLedger(session).record(
            date=RUN_DATE,
            snapshot_source=SnapshotSource.RECONCILED,
            level=Level.ADSET,
            mode=IngestMode.SNAPSHOT,
            status=RunStatus.SUCCESS,
            row_count=12,
        )

        session.add.assert_called_once_with(run)
        session.commit.assert_awaited_once()
        assert run.row_count == 12
        assert run.status == RunStatus.SUCCESS
        assert run.duration_seconds >= 0

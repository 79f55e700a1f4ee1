import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch
from core.exceptions import CriticalSourceFailure
from models.base import IngestMode, Level, SnapshotSource
from scripts import ingest_campaign_index as cli


def test_parse_args():
    args = cli.parse_args([
        "--date", "2025-01-10", "--source", "reconciled", "--level", "adset",
        "--mode", "snapshot", "--limit", "500",
    ])
    assert args.date == date(2025, 1, 10)
    assert args.source == "reconciled"
    assert args.level == "adset"
    assert args.mode == "snapshot"
    assert args.limit == 500


def test_parse_args_defaults():
    args = cli.parse_args([])
    assert args.source == "day"
    assert args.level == "campaign"
    assert args.mode == "remote"
    assert args.limit is None
    assert args.log_level is None


def test_invalid_choice_rejected():
    with pytest.raises(SystemExit):
        cli.parse_args(["--level", "ad"])


def patched_cli(run_side_effect=None):
    runner = AsyncMock()
    runner.run.side_effect = run_side_effect
    runner.run.return_value = {
        "status": "success", "records_written": 3, "date": "2025-01-10",
        "snapshot_source": "day", "level": "campaign",
    }
    session_maker = MagicMock()
    session_maker.return_value.__aenter__.return_value = AsyncMock()
    session_maker.return_value.__aexit__.return_value = False
    return runner, [
        patch.object(cli, "init_schema", AsyncMock()),
        patch.object(cli, "async_session_maker", session_maker),
        patch.object(cli, "engine", MagicMock(dispose=AsyncMock())),
        patch.object(cli, "ReconciliationRunner", MagicMock(return_value=runner)),
    ]


@pytest.mark.asyncio
async def test_ingest_success_exit_code():
    runner, patches = patched_cli()
    for p in patches:
        p.start()
    try:
        code = await cli.ingest(cli.parse_args(["--date", "2025-01-10", "--source", "reconciled"]))
    finally:
        for p in patches:
            p.stop()

    assert code == 0
    runner.run.assert_awaited_once_with(
        date(2025, 1, 10),
        level=Level.CAMPAIGN,
        snapshot_source=SnapshotSource.RECONCILED,
        mode=IngestMode.REMOTE,
        limit=None,
    )


@pytest.mark.asyncio
async def test_ingest_failure_exit_code():
    _, patches = patched_cli(CriticalSourceFailure("s1 down", endpoint="s1_daily_v3"))
    for p in patches:
        p.start()
    try:
        code = await cli.ingest(cli.parse_args(["--date", "2025-01-10"]))
    finally:
        for p in patches:
            p.stop()

    assert code == 1

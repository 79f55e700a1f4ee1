import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from scripts import run_scheduler


def test_parse_args_defaults():
    args = run_scheduler.parse_args([])
    assert args.run_now is False
    assert args.log_level is None


def patched_scheduler():
    scheduler = MagicMock()
    scheduler.run_day_pass = AsyncMock()
    engine = MagicMock(dispose=AsyncMock())
    return scheduler, engine, [
        patch.object(run_scheduler, "init_schema", AsyncMock()),
        patch.object(run_scheduler, "engine", engine),
        patch.object(run_scheduler, "IngestScheduler", MagicMock(return_value=scheduler)),
    ]


@pytest.mark.asyncio
async def test_serve_starts_and_stops_scheduler():
    scheduler, engine, patches = patched_scheduler()
    stop_event = asyncio.Event()
    stop_event.set()
    for p in patches:
        p.start()
    try:
        await run_scheduler.serve(run_scheduler.parse_args([]), stop_event)
    finally:
        for p in patches:
            p.stop()

    scheduler.start.assert_called_once()
    scheduler.run_day_pass.assert_not_awaited()
    scheduler.stop.assert_called_once()
    engine.dispose.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_now_triggers_immediate_day_pass():
    scheduler, _, patches = patched_scheduler()
    stop_event = asyncio.Event()
    stop_event.set()
    for p in patches:
        p.start()
    try:
        await run_scheduler.serve(run_scheduler.parse_args(["--run-now"]), stop_event)
    finally:
        for p in patches:
            p.stop()

    scheduler.run_day_pass.assert_awaited_once()
    scheduler.stop.assert_called_once()


@pytest.mark.asyncio
async def test_scheduler_stops_when_signalled():
    scheduler, _, patches = patched_scheduler()
    stop_event = asyncio.Event()
    for p in patches:
        p.start()
    try:
        task = asyncio.create_task(run_scheduler.serve(run_scheduler.parse_args([]), stop_event))
        await asyncio.sleep(0)
        assert not task.done()
        stop_event.set()
        await asyncio.wait_for(task, timeout=1)
    finally:
        for p in patches:
            p.stop()

    scheduler.stop.assert_called_once()

"""
Ingest one (date, level) into the campaign index.

    python scripts/ingest_campaign_index.py --date 2025-01-10 --source day \
        --level campaign --mode remote

Exit code 1 when the run fails (critical source, missing snapshot, write
failure), 0 otherwise.
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import date, datetime, timezone

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import async_session_maker, engine, init_schema
from core.exceptions import ReconciliationError
from core.logging import setup_logging
from ingestion.runner import ReconciliationRunner
from models.base import IngestMode, Level, SnapshotSource

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile campaign metrics into campaign_index")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=datetime.now(timezone.utc).date(),
        help="Target date (YYYY-MM-DD, default: today UTC)",
    )
    parser.add_argument("--source", choices=[s.value for s in SnapshotSource], default=SnapshotSource.DAY.value)
    parser.add_argument("--level", choices=[l.value for l in Level], default=Level.CAMPAIGN.value)
    parser.add_argument("--mode", choices=[m.value for m in IngestMode], default=IngestMode.REMOTE.value)
    parser.add_argument("--limit", type=int, default=None, help="Snapshot mode row limit")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL for this run")
    return parser.parse_args(argv)


async def ingest(args: argparse.Namespace) -> int:
    try:
        await init_schema()
        async with async_session_maker() as session:
            runner = ReconciliationRunner(session)
            summary = await runner.run(
                args.date,
                level=Level(args.level),
                snapshot_source=SnapshotSource(args.source),
                mode=IngestMode(args.mode),
                limit=args.limit,
            )
        logger.info(
            f"Ingestion {summary['status']}: {summary['records_written']} records for "
            f"{summary['date']} ({summary['snapshot_source']}/{summary['level']})"
        )
        return 0
    except ReconciliationError as e:
        logger.error(f"Ingestion failed: {e}")
        return 1
    finally:
        await engine.dispose()


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    return asyncio.run(ingest(args))


if __name__ == "__main__":
    sys.exit(main())

"""
Run the recurring campaign index passes until interrupted.

    python scripts/run_scheduler.py [--run-now] [--log-level DEBUG]

SIGINT/SIGTERM stop the scheduler and dispose of the engine.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import engine, init_schema
from core.logging import setup_logging
from ingestion.scheduler import IngestScheduler

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Schedule day and reconciled campaign index passes")
    parser.add_argument("--run-now", action="store_true", help="Run a day pass immediately on startup")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser.parse_args(argv)


async def serve(args: argparse.Namespace, stop_event: Optional[asyncio.Event] = None) -> None:
    """Start the scheduler and block until ``stop_event`` is set."""
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    handled = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            handled.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} unavailable; stop via stop_event only")

    logger.info(f"Starting ingest scheduler ({settings.ENVIRONMENT})")
    await init_schema()

    scheduler = IngestScheduler()
    scheduler.start()
    try:
        if args.run_now:
            await scheduler.run_day_pass()
        await stop_event.wait()
    finally:
        scheduler.stop()
        await engine.dispose()
        for sig in handled:
            loop.remove_signal_handler(sig)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    asyncio.run(serve(args))
    return 0


if __name__ == "__main__":
    sys.exit(main())

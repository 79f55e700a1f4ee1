# ============================================================================
# File: ingestion/runner.py
# Description: Campaign index reconciliation orchestrator
# ============================================================================
"""
Reconciliation Runner - drives one (date, level, snapshot source) ingestion.

Remote mode:
1. Fetch every registered source in priority order, each under the retry guard
2. Record a completeness row per attempted source
3. Merge fetched rows into a fresh aggregator
4. Write one fact record per aggregate (delete-then-insert)
5. Append the run ledger row

Snapshot mode replaces steps 1-3 with a bulk read of a captured flat file.

Failure policy:
- A critical source that ends FAILED aborts the run before any fact write
- An optional source that ends FAILED is logged and tolerated; its metrics
  are simply absent from every aggregate
- The ledger row is written last on every path
"""

from datetime import date as date_type, datetime
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.config import settings
from core.exceptions import (
    CriticalSourceFailure,
    OptionalSourceFailure,
    ReconciliationError,
)
from ingestion.extractors.snapshot_extractor import SnapshotExtractor
from ingestion.extractors.strategis_api import StrategisApi
from ingestion.guard import RetryOptions, determine_status, guarded_fetch
from ingestion.loaders.campaign_index_loader import CampaignIndexLoader
from ingestion.loaders.completeness_recorder import CompletenessRecorder
from ingestion.loaders.run_ledger import RunLedger
from ingestion.sources import SOURCE_STEPS, SourceStep, bind_fetch, ordered_steps
from ingestion.transformers.aggregator import CampaignAggregator
from ingestion.transformers.normalizer import SnapshotNormalizer
from models.base import (
    EndpointStatus,
    IngestMode,
    Level,
    RunStatus,
    SnapshotSource,
    SourceState,
    utcnow,
)
from schemas.records import CampaignRecordCreate

logger = logging.getLogger(__name__)

TERMINAL_STATES = {
    EndpointStatus.OK: SourceState.OK,
    EndpointStatus.PARTIAL: SourceState.PARTIAL,
    EndpointStatus.FAILED: SourceState.FAILED,
}


class ReconciliationRunner:
    """
    Orchestrates fetch → guard → merge → write → ledger for one target.

    Usage:
        async with async_session_maker() as session:
            runner = ReconciliationRunner(session)
            summary = await runner.run(date(2025, 1, 10), Level.CAMPAIGN)
    """

    def __init__(
        self,
        db_session: AsyncSession,
        api: Optional[StrategisApi] = None,
        steps: Sequence[SourceStep] = SOURCE_STEPS,
        snapshot_extractor: Optional[SnapshotExtractor] = None,
        include_all_networks: Optional[bool] = None,
    ):
        self.db = db_session
        self.api = api
        self.steps = ordered_steps(steps)
        self.snapshot_extractor = snapshot_extractor or SnapshotExtractor()
        self.include_all_networks = (
            settings.STRATEGIS_INCLUDE_ALL_NETWORKS if include_all_networks is None else include_all_networks
        )
        self.recorder = CompletenessRecorder(db_session)
        self.loader = CampaignIndexLoader(db_session)
        self.ledger = RunLedger(db_session)

    async def run(
        self,
        date: date_type,
        level: Level = Level.CAMPAIGN,
        snapshot_source: SnapshotSource = SnapshotSource.DAY,
        mode: IngestMode = IngestMode.REMOTE,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Run one ingestion and return its summary.

        Returns:
            Dictionary with run statistics:
            - status: "success", "partial" or "failed"
            - records_written: Number of fact records written
            - source_states: Terminal state per source label
            - tolerated_failures: Optional source failures that were skipped
            - warnings: Data-quality warnings raised by the guard

        Raises:
            CriticalSourceFailure: A critical source failed after retries
            SnapshotNotFoundError: Snapshot mode found nothing for the date
            WriteFailure: The fact batch could not be written
            ReconciliationError: Any other unexpected failure (wrapped)
        """
        started_at = utcnow()
        source_states: Dict[str, str] = {}
        tolerated: List[Dict[str, Any]] = []
        warnings: List[str] = []
        records_written = 0

        logger.info(
            f"Starting {mode.value} ingestion for {date} "
            f"({snapshot_source.value}/{level.value})"
        )

        try:
            # --------------------------------------------------
            # PHASE 1: COLLECT RECORDS
            # --------------------------------------------------
            if mode == IngestMode.SNAPSHOT:
                records = await self._collect_snapshot(date, level, snapshot_source, limit)
            else:
                records = await self._collect_remote(
                    date, level, snapshot_source, source_states, tolerated, warnings
                )

            # --------------------------------------------------
            # PHASE 2: WRITE FACT RECORDS
            # --------------------------------------------------
            logger.info(f"Processing {len(records)} records")
            records_written = await self.loader.load(records)

        except ReconciliationError as e:
            logger.error(
                f"Ingestion failed for {date} ({snapshot_source.value}/{level.value}): {e.message}",
                extra={"error_context": e.to_dict()}
            )
            await self.db.rollback()
            await self._record_failure(date, level, snapshot_source, mode, started_at, source_states, e.message)
            raise

        except Exception as e:
            logger.exception("Unexpected error in reconciliation pipeline")
            await self.db.rollback()
            await self._record_failure(date, level, snapshot_source, mode, started_at, source_states, str(e))
            raise ReconciliationError(
                "Unexpected error in reconciliation pipeline",
                context={
                    "date": date.isoformat(),
                    "level": level.value,
                    "snapshot_source": snapshot_source.value,
                    "mode": mode.value,
                },
                original_exception=e
            )

        # --------------------------------------------------
        # PHASE 3: LEDGER
        # --------------------------------------------------
        status = RunStatus.PARTIAL if tolerated else RunStatus.SUCCESS
        message = None
        if tolerated:
            message = "Tolerated optional source failures: " + ", ".join(f["endpoint"] for f in tolerated)

        run = await self.ledger.record(
            date=date,
            snapshot_source=snapshot_source,
            level=level,
            mode=mode,
            status=status,
            row_count=records_written,
            message=message,
            started_at=started_at,
            source_states=source_states or None,
        )

        logger.info(
            f"Ingestion completed: {status.value} - {records_written} records written, "
            f"{len(tolerated)} optional source(s) skipped"
        )

        return {
            "status": status.value,
            "run_id": str(run.run_id),
            "date": date.isoformat(),
            "level": level.value,
            "snapshot_source": snapshot_source.value,
            "mode": mode.value,
            "records_written": records_written,
            "source_states": source_states,
            "tolerated_failures": tolerated,
            "warnings": warnings,
        }

    async def _collect_remote(
        self,
        date: date_type,
        level: Level,
        snapshot_source: SnapshotSource,
        source_states: Dict[str, str],
        tolerated: List[Dict[str, Any]],
        warnings: List[str],
    ) -> List[CampaignRecordCreate]:
        api = self.api or StrategisApi()
        aggregator = CampaignAggregator(date, level)
        for step in self.steps:
            source_states[step.label] = SourceState.PENDING.value

        try:
            for step in self.steps:
                await self._run_source(api, step, date, aggregator, source_states, tolerated, warnings)
        finally:
            if self.api is None:
                await api.aclose()

        logger.info(f"Aggregated {len(aggregator)} campaigns from {len(self.steps)} sources")
        return aggregator.to_records(snapshot_source)

    async def _run_source(
        self,
        api: StrategisApi,
        step: SourceStep,
        date: date_type,
        aggregator: CampaignAggregator,
        source_states: Dict[str, str],
        tolerated: List[Dict[str, Any]],
        warnings: List[str],
    ) -> None:
        """Fetch, record and merge one source; applies the critical/optional policy."""
        source_states[step.label] = SourceState.FETCHING.value
        logger.info(f"-> {step.label} ({'critical' if step.critical else 'optional'})")

        expected_min_rows = await self.recorder.expected_min_rows(step.label, date)
        started_at = utcnow()
        result = await guarded_fetch(
            step.label,
            bind_fetch(api, step, date, self.include_all_networks),
            options=RetryOptions.for_source(step.critical),
            expected_min_rows=expected_min_rows,
        )
        status = determine_status(result, step.critical)

        # Every attempted source gets a completeness row, failed ones included
        await self.recorder.record(date, result, status, started_at=started_at, finished_at=utcnow())
        source_states[step.label] = TERMINAL_STATES[status].value
        warnings.extend(result.warnings)

        if status == EndpointStatus.FAILED:
            context = {
                "date": date.isoformat(),
                "http_status": result.http_status,
                "retry_count": result.retry_count,
            }
            if step.critical:
                raise CriticalSourceFailure(
                    f"Critical source {step.label} failed: {result.error}",
                    endpoint=step.label,
                    context=context,
                )

            failure = OptionalSourceFailure(
                f"Optional source {step.label} failed: {result.error}",
                endpoint=step.label,
                context=context,
            )
            logger.warning(
                f"<- {step.label}: skipped after {result.retry_count} retries ({result.error})",
                extra={"error_context": failure.to_dict()}
            )
            tolerated.append({"endpoint": step.label, "error": result.error, "http_status": result.http_status})
            return

        merged = aggregator.merge(step.label, result.rows)
        if status == EndpointStatus.PARTIAL:
            logger.warning(f"<- {step.label}: PARTIAL, {result.row_count} rows ({merged} merged)")
        else:
            logger.info(f"<- {step.label}: {result.row_count} rows ({merged} merged)")

    async def _collect_snapshot(
        self,
        date: date_type,
        level: Level,
        snapshot_source: SnapshotSource,
        limit: Optional[int],
    ) -> List[CampaignRecordCreate]:
        rows = await self.snapshot_extractor.fetch_rows(date, snapshot_source, level, limit)
        normalizer = SnapshotNormalizer(date, level, snapshot_source)
        return normalizer.normalize_many(rows)

    async def _record_failure(
        self,
        date: date_type,
        level: Level,
        snapshot_source: SnapshotSource,
        mode: IngestMode,
        started_at: datetime,
        source_states: Dict[str, str],
        message: str,
    ) -> None:
        try:
            await self.ledger.record(
                date=date,
                snapshot_source=snapshot_source,
                level=level,
                mode=mode,
                status=RunStatus.FAILED,
                row_count=0,
                message=message,
                started_at=started_at,
                source_states=source_states or None,
            )
        except Exception:
            # The original failure is re-raised by the caller
            logger.exception("Failed to write run ledger entry for failed ingestion")
            await self.db.rollback()

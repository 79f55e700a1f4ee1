"""
Campaign index ingestion pipeline.

Modules:
    sources: Registered upstream sources with their merge priority and criticality
    guard: Retry/quality guard wrapped around every fetch
    runner: Orchestrator for one (date, level, snapshot source) run
    scheduler: APScheduler integration for the day and reconciled passes

Subpackages:
    extractors: Upstream reporting API client and snapshot file reader
    transformers: Field extraction, lookups, snapshot normalization, aggregation
    loaders: Fact writer, completeness recorder, run ledger

Architecture:
    Remote mode fetches each source in priority order under the retry guard,
    records its completeness row, and merges its rows into a per-run
    aggregator. Once every source has been handled the aggregator emits one
    fact record per campaign, which the loader writes with delete-then-insert.
    A ledger row closes every run.

    Critical sources (S1 revenue, Facebook taxonomy) abort the run when they
    fail after retries. Optional sources are skipped and the run continues.

Usage:
    from ingestion.runner import ReconciliationRunner

    async with async_session_maker() as session:
        summary = await ReconciliationRunner(session).run(date(2025, 1, 10))
        print(f"Wrote {summary['records_written']} records")

Error Handling:
    All components raise exceptions from core.exceptions. Transient upstream
    failures are retried inside the guard; everything else reaches the runner,
    which applies the critical/optional policy.
"""

__all__ = [
    "ReconciliationRunner",
    "IngestScheduler",
    "StrategisApi",
    "SnapshotExtractor",
    "CampaignAggregator",
    "SnapshotNormalizer",
    "CampaignIndexLoader",
    "CompletenessRecorder",
    "RunLedger",
]

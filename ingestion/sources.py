"""
Source registry: which upstream feeds a remote run pulls, and in what order.

Merge precedence is the ``priority`` field, never list or completion order.
Authoritative revenue and taxonomy sources carry the lowest numbers so their
identifying attributes land first and survive the first-writer-wins backfill.
"""

from dataclasses import dataclass
from datetime import date as date_type
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Sequence, Tuple

from ingestion.extractors.strategis_api import StrategisApi


@dataclass(frozen=True)
class SourceStep:
    label: str
    priority: int
    critical: bool
    fetch_method: str


SOURCE_STEPS: Tuple[SourceStep, ...] = (
    # Revenue and identity metadata: the run is invalid without these
    SourceStep("s1_daily_v3", 10, True, "fetch_s1_daily"),
    SourceStep("facebook_campaigns", 20, True, "fetch_facebook_campaigns"),
    SourceStep("facebook_report", 30, True, "fetch_facebook_report"),
    # Supplementary metadata and metrics
    SourceStep("facebook_adsets", 40, False, "fetch_facebook_adsets"),
    SourceStep("s1_rpc_average", 50, False, "fetch_s1_rpc_average"),
    SourceStep("strategis_metrics", 60, False, "fetch_strategis_metrics"),
    SourceStep("facebook_pixel", 70, False, "fetch_facebook_pixel"),
    # Spend-only platform reports
    SourceStep("taboola_report", 100, False, "fetch_taboola_report"),
    SourceStep("outbrain_report", 110, False, "fetch_outbrain_report"),
    SourceStep("newsbreak_report", 120, False, "fetch_newsbreak_report"),
    SourceStep("mediago_report", 130, False, "fetch_mediago_report"),
    SourceStep("zemanta_report", 140, False, "fetch_zemanta_report"),
    SourceStep("smartnews_report", 150, False, "fetch_smartnews_report"),
)

Fetch = Callable[[], Awaitable[List[Dict[str, Any]]]]


def ordered_steps(steps: Sequence[SourceStep] = SOURCE_STEPS) -> List[SourceStep]:
    """Steps in merge-precedence order."""
    return sorted(steps, key=lambda step: step.priority)


def bind_fetch(
    api: StrategisApi,
    step: SourceStep,
    date: date_type,
    include_all_networks: bool = False,
) -> Fetch:
    """Zero-argument fetch for one step, as the retry guard expects."""
    method = getattr(api, step.fetch_method)
    return partial(method, date, include_all_networks=include_all_networks)

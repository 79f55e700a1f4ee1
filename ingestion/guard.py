"""
Retry/quality guard wrapped around every upstream fetch.

Responsibilities:
- Exponential-backoff retry of transient failures (gateway and timeout
  statuses, dropped connections)
- Post-fetch data-quality assessment against the historical row baseline
- Revenue/spend presence scan
- OK / PARTIAL / FAILED classification

The guard has no side effects beyond logging; persisting the outcome is the
completeness recorder's job.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, TypeVar

from core.config import settings
from core.exceptions import RetryableError
from ingestion.transformers.fields import (
    NETWORK_CAMPAIGN_ID_KEYS,
    REVENUE_INDICATOR_FIELDS,
    SPEND_INDICATOR_FIELDS,
    STRATEGIS_CAMPAIGN_ID_KEYS,
    has_positive_value,
    pick_id,
)
from models.base import EndpointStatus
from schemas.records import EndpointResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_STATUSES = frozenset({502, 503, 504, 408})

# Below this share of the expected minimum a row count is flagged
MIN_ROW_RATIO = 0.5


@dataclass(frozen=True)
class RetryOptions:
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    retryable_statuses: FrozenSet[int] = field(default=DEFAULT_RETRYABLE_STATUSES)

    @classmethod
    def for_source(cls, critical: bool) -> "RetryOptions":
        """Retry budget from settings; critical sources get the larger one."""
        return cls(
            max_retries=settings.CRITICAL_MAX_RETRIES if critical else settings.OPTIONAL_MAX_RETRIES,
            initial_delay=settings.RETRY_INITIAL_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
            retryable_statuses=frozenset(settings.RETRYABLE_STATUSES),
        )

    def delay_for(self, attempt: int) -> float:
        return min(self.max_delay, self.initial_delay * (2 ** attempt))


@dataclass
class QualityReport:
    is_valid: bool
    warnings: List[str]


def is_retryable(error: Exception, options: RetryOptions) -> bool:
    """
    A failure is retried when its HTTP status is in the retryable set, or
    when it carries no status but is a transient (network-level) error.
    """
    status = getattr(error, "http_status", None)
    if status is not None:
        return status in options.retryable_statuses
    return isinstance(error, RetryableError)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    label: str = "fetch",
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
) -> T:
    """
    Await ``fn()``; retry retryable failures up to ``options.max_retries`` times.

    Attempt ``n`` (0-based) that fails retryably waits
    ``min(max_delay, initial_delay * 2**n)`` before the next attempt. A
    non-retryable failure, or a failure on the final attempt, is re-raised.
    """
    opts = options or RetryOptions()

    for attempt in range(opts.max_retries + 1):
        try:
            return await fn()
        except Exception as e:
            if not is_retryable(e, opts) or attempt >= opts.max_retries:
                raise

            delay = opts.delay_for(attempt)
            status = getattr(e, "http_status", None)
            logger.warning(
                f"{label}: retry attempt {attempt + 1}/{opts.max_retries} "
                f"after {delay:.2f}s (HTTP {status or 'unknown'}): {getattr(e, 'message', e)}",
                extra={"endpoint": label, "attempt": attempt + 1, "http_status": status, "delay_seconds": delay},
            )
            if on_retry:
                on_retry(attempt, e, delay)
            await asyncio.sleep(delay)

    # max_retries < 0 leaves no attempt at all
    raise ValueError(f"Invalid retry budget: {opts.max_retries}")


def check_data_quality(
    rows: List[Dict[str, Any]],
    endpoint: str,
    expected_min_rows: Optional[int] = None,
) -> QualityReport:
    """Flag empty responses, row counts under half the baseline, and missing ids."""
    warnings = []

    if not rows:
        warnings.append(f"{endpoint}: Zero rows returned (may indicate data gap or API issue)")
    elif expected_min_rows and len(rows) < expected_min_rows * MIN_ROW_RATIO:
        warnings.append(
            f"{endpoint}: Row count ({len(rows)}) is <50% of expected minimum ({expected_min_rows})"
        )

    if rows and not any(
        pick_id(r, STRATEGIS_CAMPAIGN_ID_KEYS) or pick_id(r, NETWORK_CAMPAIGN_ID_KEYS) for r in rows
    ):
        warnings.append(f"{endpoint}: No campaign IDs found in response")

    return QualityReport(is_valid=not warnings, warnings=warnings)


def extract_financial_indicators(rows: List[Dict[str, Any]]) -> Dict[str, bool]:
    return {
        "has_revenue": has_positive_value(rows, REVENUE_INDICATOR_FIELDS),
        "has_spend": has_positive_value(rows, SPEND_INDICATOR_FIELDS),
    }


def determine_status(result: EndpointResult, is_critical: bool) -> EndpointStatus:
    """
    FAILED when the fetch failed; PARTIAL for an empty critical source or a
    row count under half the baseline; OK otherwise.
    """
    if not result.success:
        return EndpointStatus.FAILED

    if result.row_count == 0:
        return EndpointStatus.PARTIAL if is_critical else EndpointStatus.OK

    if result.expected_min_rows and result.row_count < result.expected_min_rows * MIN_ROW_RATIO:
        return EndpointStatus.PARTIAL

    return EndpointStatus.OK


async def guarded_fetch(
    endpoint: str,
    fetch: Callable[[], Awaitable[List[Dict[str, Any]]]],
    options: Optional[RetryOptions] = None,
    expected_min_rows: Optional[int] = None,
) -> EndpointResult:
    """
    Run one source fetch under the retry policy and assess what came back.

    Never raises for fetch failures: they come back as ``success=False``
    with the error text and last HTTP status, so the caller can record them
    before applying its critical/optional policy.
    """
    retries = []

    def _count_retry(attempt: int, error: Exception, delay: float) -> None:
        retries.append(attempt)

    try:
        rows = await with_retry(fetch, options, label=endpoint, on_retry=_count_retry)
    except Exception as e:
        logger.error(
            f"{endpoint}: fetch failed after {len(retries)} retries: {getattr(e, 'message', e)}",
            extra={"error_context": e.to_dict() if hasattr(e, "to_dict") else {"error": str(e)}},
        )
        return EndpointResult(
            endpoint=endpoint,
            success=False,
            error=getattr(e, "message", None) or str(e) or type(e).__name__,
            http_status=getattr(e, "http_status", None),
            retry_count=len(retries),
            expected_min_rows=expected_min_rows,
        )

    rows = list(rows or [])
    quality = check_data_quality(rows, endpoint, expected_min_rows)
    for warning in quality.warnings:
        logger.warning(warning)

    return EndpointResult(
        endpoint=endpoint,
        success=True,
        rows=rows,
        row_count=len(rows),
        retry_count=len(retries),
        expected_min_rows=expected_min_rows,
        warnings=quality.warnings,
        **extract_financial_indicators(rows),
    )

"""
Custom exceptions for the reconciliation pipeline with structured error context.

This module provides the exception hierarchy used across source fetching,
aggregation and the metrics store. Each exception includes context
information for debugging and monitoring.

Exception Hierarchy:
    ReconciliationError (base)
    ├── ExtractionError
    │   ├── SourceRequestError
    │   │   ├── TransientNetworkError (retryable)
    │   │   └── PermanentRequestError (non-retryable)
    │   ├── SnapshotNotFoundError
    │   └── SourceFailure
    │       ├── CriticalSourceFailure
    │       └── OptionalSourceFailure
    ├── LoadError
    │   └── WriteFailure
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ReconciliationError(Exception):
    """
    Base exception for all reconciliation errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (endpoint, date, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ReconciliationError):
    """
    Mixin for errors that the retry guard should retry.

    Use this for transient errors like:
    - Gateway errors (HTTP 502, 503, 504)
    - Request timeouts (HTTP 408, client-side timeouts)
    - Dropped connections
    """
    pass


class NonRetryableError(ReconciliationError):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Bad requests and missing resources (HTTP 400, 404)
    - Undecodable response bodies
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ReconciliationError):
    """Base exception for data extraction failures."""
    pass


class SourceRequestError(ExtractionError):
    """
    Exception raised when a request to an upstream reporting endpoint fails.

    Context should include:
        - endpoint: Source label (e.g. "s1_daily_v3")
        - url: Request URL
        - status_code: HTTP status code (if a response was received)
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        http_status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception)
        self.endpoint = endpoint
        self.http_status = http_status
        if endpoint:
            self.context.setdefault("endpoint", endpoint)
        if http_status is not None:
            self.context.setdefault("status_code", http_status)


class TransientNetworkError(RetryableError, SourceRequestError):
    """Gateway/timeout-style failures, recovered locally by backoff."""
    pass


class PermanentRequestError(NonRetryableError, SourceRequestError):
    """Any other request failure; surfaced immediately without retrying."""
    pass


class SnapshotNotFoundError(NonRetryableError, ExtractionError):
    """
    Exception raised when no captured snapshot covers the requested date.

    Context should include:
        - base_dir: Snapshot root that was searched
        - date: Requested date
        - level: Requested granularity
    """
    pass


class SourceFailure(ExtractionError):
    """
    A source exhausted its retry budget or failed permanently.

    Context should include:
        - endpoint: Source label
        - status_code: Last HTTP status seen (if any)
        - retry_count: Retries consumed before giving up
    """

    def __init__(
        self,
        message: str,
        endpoint: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message, context, original_exception)
        self.endpoint = endpoint
        self.context.setdefault("endpoint", endpoint)


class CriticalSourceFailure(SourceFailure):
    """Failure of a revenue/identity source; aborts the whole run."""
    pass


class OptionalSourceFailure(SourceFailure):
    """Failure of a spend/pixel feed; logged and tolerated."""
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ReconciliationError):
    """Base exception for metrics store write failures."""
    pass


class WriteFailure(LoadError):
    """
    Exception raised when the fact-record upsert fails.

    Context should include:
        - operation: Statement that failed (DELETE, INSERT)
        - table_name: Name of the table
        - record_scope: (campaign_id, level, date, snapshot_source) being written
        - records_to_write: Size of the aborted batch
    """
    pass

"""
Core utilities and configuration for the campaign metrics reconciliation system.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database engine, session management and schema creation
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import async_session_maker, init_schema
    from core.exceptions import CriticalSourceFailure, TransientNetworkError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Get database session
    async with async_session_maker() as session:
        # Perform database operations
        pass
"""

__all__ = [
    "settings",
    "async_session_maker",
    "init_schema",
    "setup_logging",
    # Exceptions
    "ReconciliationError",
    "RetryableError",
    "NonRetryableError",
    "ExtractionError",
    "SourceRequestError",
    "TransientNetworkError",
    "PermanentRequestError",
    "SnapshotNotFoundError",
    "SourceFailure",
    "CriticalSourceFailure",
    "OptionalSourceFailure",
    "LoadError",
    "WriteFailure",
]

import logging
from core.config import settings
from core.logging import setup_logging


def test_logger_overrides_are_applied(monkeypatch):
    guard_logger = logging.getLogger("ingestion.guard")
    previous = guard_logger.level
    monkeypatch.setattr(settings, "LOGGER_LEVELS", {"ingestion.guard": "error"})
    try:
        setup_logging()
        assert guard_logger.level == logging.ERROR
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        guard_logger.setLevel(previous)

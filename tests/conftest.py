"""
Pytest configuration and fixtures
"""

import os
import pytest
import pytest_asyncio
from collections import Counter
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings
from ingestion.sources import SOURCE_STEPS
from models.base import Base

FETCH_LABELS = {step.fetch_method: step.label for step in SOURCE_STEPS}


class FakeStrategisApi:
    """
    Stand-in for StrategisApi keyed by source label.

    Each label maps to a row list or an exception instance to raise; labels
    that are not configured return no rows.
    """

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = Counter()

    def __getattr__(self, name):
        label = FETCH_LABELS.get(name)
        if label is None:
            raise AttributeError(name)

        async def fetch(date, include_all_networks=False):
            self.calls[label] += 1
            outcome = self.responses.get(label, [])
            if isinstance(outcome, Exception):
                raise outcome
            return list(outcome)

        return fetch

    async def aclose(self):
        pass


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine (throwaway SQLite file unless overridden)"""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'metrics_test.db'}"
    engine = create_async_engine(
        url,
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fast_retries(monkeypatch):
    """Zero backoff so retry paths run instantly"""
    monkeypatch.setattr(settings, "RETRY_INITIAL_DELAY_SECONDS", 0.0)
    monkeypatch.setattr(settings, "RETRY_MAX_DELAY_SECONDS", 0.0)


@pytest.fixture
def s1_rows():
    """S1 daily revenue rows"""
    return [
        {
            "strategisCampaignId": "sc-001",
            "campaign_id": "fb-111",
            "revenue": "120.50",
            "sessions": "40",
            "clicks": 12,
            "owner": "alice",
            "lane": "prospecting",
            "category": "health",
            "rsoc_site": "https://www.wesoughtit.com/landing",
            "networkId": "112",
        },
        {
            "strategisCampaignId": "sc-002",
            "campaign_id": "fb-222",
            "revenue": 80,
            "sessions": 25,
            "owner": "bob",
            "category": "finance",
        },
    ]


@pytest.fixture
def facebook_report_rows():
    """Facebook spend report rows"""
    return [
        {
            "strategisCampaignId": "sc-001",
            "campaign_id": "fb-111",
            "campaign_name": "Health | Broad | US",
            "account_id": "act_9001",
            "owner": "someone-else",
            "spend": "30.00",
            "clicks": 8,
        },
        {
            "strategisCampaignId": "sc-002",
            "campaign_id": "fb-222",
            "campaign_name": "Finance | LAL | US",
            "spend": 20,
        },
    ]


@pytest.fixture
def fake_api():
    """Factory for FakeStrategisApi"""
    return FakeStrategisApi
